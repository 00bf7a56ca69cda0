# backend/routes/shop.py
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from config import settings
from database import get_db
from models.shop_profile import ShopProfile
from models.users import User, ROLE_ADMIN
from utils.tokenJWT import role_required
from utils.audit import write_log, client_ip
from schemas.shop_profile import ShopProfileOut, ShopProfileUpdate
from services.errors import store_errors

router = APIRouter(prefix="/shop", tags=["Shop"])

# Handles the bakery's public profile (singleton row) and its administrative updates


def _profile_to_out(profile: ShopProfile) -> ShopProfileOut:
    if not profile:
        # No row yet: the storefront shows the built-in defaults
        return ShopProfileOut(
            shop_name=settings.DEFAULT_SHOP_NAME,
            logo_url=settings.DEFAULT_LOGO_URL,
            is_default=True,
        )
    return ShopProfileOut(
        shop_name=profile.shop_name,
        address=profile.address,
        phone=profile.phone,
        email=profile.email,
        about_us=profile.about_us,
        facebook_url=profile.facebook_url or "",
        instagram_url=profile.instagram_url or "",
        twitter_url=profile.twitter_url or "",
        github_url=profile.github_url or "",
        logo_url=profile.logo_url or settings.DEFAULT_LOGO_URL,
    )


# Retrieve shop details
@router.get("/profile", response_model=ShopProfileOut)
def get_profile(db: Session = Depends(get_db)):
    with store_errors(db):
        profile = db.query(ShopProfile).order_by(ShopProfile.id.asc()).first()
    return _profile_to_out(profile)


# Create or update shop details (Admin only)
@router.patch("/profile", response_model=ShopProfileOut)
def update_profile(
    payload: ShopProfileUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ROLE_ADMIN))
):
    profile = db.query(ShopProfile).order_by(ShopProfile.id.asc()).first()
    if not profile:
        profile = ShopProfile()
        db.add(profile)

    data = payload.model_dump(exclude_unset=True)
    # Keep the current logo unless a new one is sent
    if data.get("logo_url") is None:
        data.pop("logo_url", None)
    for key, value in data.items():
        setattr(profile, key, value)

    db.commit()
    db.refresh(profile)

    write_log(
        db,
        user_id=current_user.id,
        action="SHOP_PROFILE_UPDATE",
        resource="shop",
        status="SUCCESS",
        ip=client_ip(request),
        meta={"profile_id": profile.id}
    )

    return _profile_to_out(profile)
