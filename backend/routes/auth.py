# backend/routes/auth.py
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session
from sqlalchemy import func
from utils.hashing import get_password_hash, verify_password
from utils.tokenJWT import create_access_token, get_current_user
from utils.audit import write_log, client_ip
from models.users import User, ROLE_CUSTOMER
from schemas import user as schemas
from services.errors import AuthRequired, Conflict, unique_or_conflict
from database import get_db

router = APIRouter(tags=["Auth"])


def _email_taken(db: Session, email: str) -> bool:
    return db.query(User).filter(func.lower(User.email) == email).first() is not None

# Register a new customer
@router.post("/register", response_model=schemas.UserResponse, status_code=status.HTTP_201_CREATED)
def register(user: schemas.UserCreate, request: Request, db: Session = Depends(get_db)):
    # Normalize email input
    normalized_email = user.email.strip().lower()

    # Check for existing user
    if _email_taken(db, normalized_email):
        write_log(
            db,
            user_id=None,
            action="REGISTER",
            resource="auth",
            status="FAIL",
            ip=client_ip(request),
            meta={"email": normalized_email, "reason": "Email exists"},
        )
        raise Conflict("Email already registered")

    # Create new user instance with hashed password
    new_user = User(
        email=normalized_email,
        password_hash=get_password_hash(user.password),
        role=ROLE_CUSTOMER,
        full_name=user.full_name,
        address=user.address,
        phone_number=user.phone_number,
        gender=user.gender,
    )
    db.add(new_user)
    # A concurrent registration may still win the unique index
    with unique_or_conflict(db, "Email already registered"):
        db.commit()
    db.refresh(new_user)

    write_log(
        db,
        user_id=new_user.id,
        action="REGISTER",
        resource="auth",
        status="SUCCESS",
        ip=client_ip(request),
        meta={"email": new_user.email},
    )

    return new_user


# Authenticate user and issue JWT token
@router.post("/login", response_model=schemas.Token)
def login(payload: schemas.UserLogin, request: Request, db: Session = Depends(get_db)):
    email = payload.email.strip().lower()
    db_user = db.query(User).filter(User.email == email).first()

    # Validate credentials and log failure on error
    if not db_user or not verify_password(payload.password, db_user.password_hash):
        write_log(db, user_id=(db_user.id if db_user else None), action="LOGIN", resource="auth",
                  status="FAIL", ip=client_ip(request), meta={"email": email})
        raise AuthRequired("Invalid credentials")

    access_token = create_access_token(data={"sub": db_user.email, "role": db_user.role})

    write_log(db, user_id=db_user.id, action="LOGIN", resource="auth",
              status="SUCCESS", ip=client_ip(request), meta={"email": db_user.email})

    return {"access_token": access_token, "token_type": "bearer", "role": db_user.role}


# Tokens are stateless: the client drops it, the server records the sign-out
@router.post("/logout")
def logout(request: Request, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    write_log(db, user_id=current_user.id, action="LOGOUT", resource="auth",
              status="SUCCESS", ip=client_ip(request))
    return {"message": "Signed out"}


# Retrieve current authenticated user details
@router.get("/me", response_model=schemas.UserResponse)
def me(current_user: User = Depends(get_current_user)):
    return current_user


# Update own profile (checkout form defaults come from here)
@router.patch("/me", response_model=schemas.UserResponse)
def update_me(
    payload: schemas.ProfileUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    for key, value in changes.items():
        setattr(current_user, key, value)
    db.commit()
    db.refresh(current_user)

    write_log(db, user_id=current_user.id, action="PROFILE_UPDATE", resource="users",
              status="SUCCESS", ip=client_ip(request), meta={"fields": sorted(changes)})
    return current_user
