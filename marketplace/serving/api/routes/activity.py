"""
User Activity API Endpoints

Thin REST layer over UserActivityService: parses identifiers, applies the
ownership check and delegates. Error mapping lives in serving.api.errors.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from marketplace.activity.schemas import (
    BuyerOrders,
    ErrorResponse,
    SellerOrders,
    SellerStats,
    UserOrders,
    UserProfile,
    UserReviews,
    UserSales,
)
from marketplace.activity.service import UserActivityService
from marketplace.serving.api.dependencies import (
    AccessPolicy,
    buyer_id_param,
    get_access_policy,
    get_activity_service,
    seller_id_param,
    user_id_param,
)

router = APIRouter(
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)


# =============================================================================
# USER-KEYED VIEWS
# =============================================================================

@router.get("/user/{user_id}/reviews", response_model=UserReviews)
async def get_user_reviews(
    user_id: int = Depends(user_id_param),
    access: AccessPolicy = Depends(get_access_policy),
    service: UserActivityService = Depends(get_activity_service),
) -> UserReviews:
    """Reviews written by the user's buyer profile."""
    await access.require_user(user_id)
    return await service.get_user_reviews(user_id)


@router.get("/user/{user_id}/orders", response_model=UserOrders)
async def get_user_orders(
    user_id: int = Depends(user_id_param),
    access: AccessPolicy = Depends(get_access_policy),
    service: UserActivityService = Depends(get_activity_service),
) -> UserOrders:
    """Orders placed through the user's buyer profile."""
    await access.require_user(user_id)
    return await service.get_user_orders(user_id)


@router.get("/user/{user_id}/sales", response_model=UserSales)
async def get_user_sales(
    user_id: int = Depends(user_id_param),
    status: Optional[str] = Query(None, description="Only orders in this status"),
    limit: Optional[int] = Query(None, description="Page size in orders"),
    offset: int = Query(0, description="Orders to skip"),
    access: AccessPolicy = Depends(get_access_policy),
    service: UserActivityService = Depends(get_activity_service),
) -> UserSales:
    """Seller-scoped orders for the user's seller profile."""
    await access.require_user(user_id)
    return await service.get_user_sales(user_id, status=status, limit=limit, offset=offset)


@router.get("/user/{user_id}/profile", response_model=UserProfile)
async def get_user_profile(
    user_id: int = Depends(user_id_param),
    access: AccessPolicy = Depends(get_access_policy),
    service: UserActivityService = Depends(get_activity_service),
) -> UserProfile:
    """User identity with buyer and seller summaries."""
    await access.require_user(user_id)
    return await service.get_user_profile(user_id)


# =============================================================================
# BUYER / SELLER-KEYED VIEWS
# =============================================================================

@router.get("/buyer/{buyer_id}/orders", response_model=BuyerOrders)
async def get_buyer_orders(
    buyer_id: int = Depends(buyer_id_param),
    access: AccessPolicy = Depends(get_access_policy),
    service: UserActivityService = Depends(get_activity_service),
) -> BuyerOrders:
    """Orders placed by a buyer with items inlined."""
    await access.require_owner(lambda: service.owner_of_buyer(buyer_id))
    return await service.get_buyer_orders(buyer_id)


@router.get("/seller/{seller_id}/orders", response_model=SellerOrders)
async def get_seller_orders(
    seller_id: int = Depends(seller_id_param),
    status: Optional[str] = Query(None, description="Only orders in this status"),
    limit: Optional[int] = Query(None, description="Page size in orders"),
    offset: int = Query(0, description="Orders to skip"),
    access: AccessPolicy = Depends(get_access_policy),
    service: UserActivityService = Depends(get_activity_service),
) -> SellerOrders:
    """
    Orders containing the seller's products.

    Each order shows only this seller's items.
    """
    await access.require_owner(lambda: service.owner_of_seller(seller_id))
    return await service.get_seller_orders(seller_id, status=status, limit=limit, offset=offset)


@router.get("/seller/{seller_id}/stats", response_model=SellerStats)
async def get_seller_stats(
    seller_id: int = Depends(seller_id_param),
    access: AccessPolicy = Depends(get_access_policy),
    service: UserActivityService = Depends(get_activity_service),
) -> SellerStats:
    """Seller totals, revenue and pending counts, recomputed per request."""
    await access.require_owner(lambda: service.owner_of_seller(seller_id))
    return await service.compute_seller_stats(seller_id)
