from fastapi import APIRouter

from homeledger.api.endpoints import properties
from homeledger.api.endpoints import rooms
from homeledger.api.endpoints import containers
from homeledger.api.endpoints import items
from homeledger.api.endpoints import categories
from homeledger.api.endpoints import tags
from homeledger.api.endpoints import receipts
from homeledger.api.endpoints import backup

api_router = APIRouter()

api_router.include_router(properties.router, prefix="/properties", tags=["Properties"])
api_router.include_router(rooms.router, prefix="/rooms", tags=["Rooms"])
api_router.include_router(containers.router, prefix="/containers", tags=["Containers"])
api_router.include_router(items.router, prefix="/items", tags=["Items"])
api_router.include_router(categories.router, prefix="/categories", tags=["Categories"])
api_router.include_router(tags.router, prefix="/tags", tags=["Tags"])
api_router.include_router(receipts.router, prefix="/receipts", tags=["Receipts"])
api_router.include_router(backup.router, prefix="/backup", tags=["Backup"])
