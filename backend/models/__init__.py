# Importing the package registers every table on Base.metadata
from models.users import User
from models.category import Category
from models.product import Product
from models.inventory import InventoryUnit, UnitStatus
from models.cart import CartItem
from models.order import Order, OrderItem, OrderStatus
from models.qr_code import QrCode
from models.review import Review, ReviewHelpfulVote
from models.log import Log
