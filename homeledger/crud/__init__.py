# homeledger/crud/__init__.py
from . import graph
from . import crud_property as property
from . import crud_room as room
from . import crud_container as container
from . import crud_category as category
from . import crud_tag as tag
from . import crud_item as item
from . import crud_receipt as receipt
