"""Back-office API under /admin; every route requires X-Admin-Secret."""
from fastapi import APIRouter, Depends

from app.admin.deps import require_admin
from app.admin.routers import orders

admin_router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])

admin_router.include_router(orders.router, prefix="/orders", tags=["admin-orders"])
