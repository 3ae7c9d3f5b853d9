from fastapi import APIRouter

from biztech.api.v1.endpoints.health import router as health_router
from biztech.api.v1.endpoints.auth import router as auth_router
from biztech.api.v1.endpoints.me import router as me_router
from biztech.api.v1.endpoints.listings import router as listings_router
from biztech.api.v1.endpoints.seller import router as seller_router
from biztech.api.v1.endpoints.buyer import router as buyer_router
from biztech.api.v1.endpoints.leads import router as leads_router
from biztech.api.v1.endpoints.agent import router as agent_router
from biztech.api.v1.endpoints.admin import router as admin_router


router = APIRouter(prefix="/v1")
router.include_router(health_router, tags=["health"])
router.include_router(auth_router, tags=["auth"])
router.include_router(me_router, tags=["me"])
router.include_router(listings_router, tags=["listings"])
router.include_router(seller_router, tags=["seller"])
router.include_router(buyer_router, tags=["buyer"])
router.include_router(leads_router, tags=["leads"])
router.include_router(agent_router, tags=["agent"])
router.include_router(admin_router, tags=["admin"])
