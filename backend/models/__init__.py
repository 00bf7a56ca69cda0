# Importing the modules registers every table on Base.metadata
from models import users, cake, cart, order, shop_profile, log  # noqa: F401
