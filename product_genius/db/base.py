from product_genius.db.base_class import Base


# IMPORT ALL MODELS HERE (THIS REGISTERS THEM WITH Base.metadata)
from product_genius.models.user import User
from product_genius.models.temp_account import TempAccount
from product_genius.models.category import Category, CategoryTranslation
from product_genius.models.product import Product, ProductTranslation, Media
from product_genius.models.supplier import Supplier, ProductSupplier
from product_genius.models.plan import Plan
from product_genius.models.subscription import Subscription
from product_genius.models.payment import Payment
from product_genius.models.order import Order, OrderItem
from product_genius.models.token_blacklist import TokenBlacklist
