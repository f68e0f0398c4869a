"""API v1 router aggregator.

All v1 endpoint routers are included here and mounted at /api/v1.
"""

from fastapi import APIRouter

from portal.api.v1 import invitations, me, records, registration

router = APIRouter()

# =============================================================================
# Session
# =============================================================================

router.include_router(me.router, prefix="/me", tags=["me"])

# =============================================================================
# Broker registration (public)
# =============================================================================

router.include_router(
    registration.router, prefix="/registration", tags=["registration"]
)

# =============================================================================
# Records
# =============================================================================

router.include_router(records.brokers_router, prefix="/brokers", tags=["brokers"])
router.include_router(
    records.broker_review_router, prefix="/brokers", tags=["brokers"]
)
router.include_router(
    records.policyholders_router, prefix="/policyholders", tags=["policyholders"]
)
router.include_router(
    records.proposals_router, prefix="/proposals", tags=["proposals"]
)
router.include_router(
    records.beneficiaries_router, prefix="/beneficiaries", tags=["beneficiaries"]
)
router.include_router(records.offers_router, prefix="/offers", tags=["offers"])

# =============================================================================
# Bond offer invitations
# =============================================================================

router.include_router(invitations.bonds_router, prefix="/bonds", tags=["bonds"])
router.include_router(
    invitations.invitations_router, prefix="/invitations", tags=["invitations"]
)
