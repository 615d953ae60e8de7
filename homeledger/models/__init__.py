# homeledger/models/__init__.py
from .property import Property
from .room import Room
from .container import Container
from .category import Category
from .tag import Tag, item_tags
from .item import Item
from .item_photo import ItemPhoto
from .receipt import Receipt
from .store_metadata import store_metadata
