from product_genius.models.user import User, UserRole
from product_genius.models.temp_account import TempAccount
from product_genius.models.category import Category, CategoryTranslation
from product_genius.models.product import Product, ProductTranslation, Media, MediaType
from product_genius.models.supplier import Supplier, ProductSupplier
from product_genius.models.plan import Plan
from product_genius.models.subscription import Subscription, SubscriptionStatus
from product_genius.models.payment import Payment, PaymentStatus
from product_genius.models.order import Order, OrderItem, OrderStatus
from product_genius.models.token_blacklist import TokenBlacklist
