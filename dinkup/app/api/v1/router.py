"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from dinkup.app.api.v1.endpoints import audit, transactions, payments, notifications

router = APIRouter()

# Ingestion webhook
router.include_router(transactions.router)

# Admin ledger and review endpoints
router.include_router(payments.admin_router)
router.include_router(transactions.admin_router)
router.include_router(notifications.router)
router.include_router(audit.router)

# Player-facing endpoints
router.include_router(payments.player_router)
