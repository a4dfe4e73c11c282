"""Cart, pricing and checkout endpoints for the UI layer."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, HTTPException, Request, status

from delivery_cart.api.models import (
    AddItemRequest,
    CheckoutRequest,
    PricingInputsRequest,
    UpdateQuantityRequest,
)
from delivery_cart.domain.errors import (
    CartNotSettled,
    EmptyCart,
    InvalidPricingInput,
    OrderSubmissionFailed,
    PricingNotReady,
    RestaurantConflict,
)

if TYPE_CHECKING:
    from delivery_cart.containers import AppContainer
    from delivery_cart.domain.cart import CartItem
    from delivery_cart.domain.pricing import PricingBreakdown

router = APIRouter(tags=["cart"])


def _container(request: Request) -> AppContainer:
    return request.app.state.container


@router.get("/cart")
async def get_cart(request: Request) -> dict[str, object]:
    """Return the current (optimistic) cart contents."""
    return _cart_view(_container(request))


@router.post("/cart/items", status_code=status.HTTP_201_CREATED)
async def add_item(payload: AddItemRequest, request: Request) -> dict[str, object]:
    """Add a line to the cart."""
    container = _container(request)
    try:
        container.coordinator.add_item(
            payload.to_domain(), replace_cart=payload.replace_cart
        )
    except RestaurantConflict as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "message": str(exc),
                "current_restaurant_id": exc.current_restaurant_id,
                "incoming_restaurant_id": exc.incoming_restaurant_id,
            },
        ) from exc
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)
        ) from exc
    return _cart_view(container)


@router.patch("/cart/items/{item_id}")
async def update_item(
    item_id: str, payload: UpdateQuantityRequest, request: Request
) -> dict[str, object]:
    """Change a line's quantity; zero removes it."""
    container = _container(request)
    container.coordinator.update_quantity(item_id, payload.quantity)
    return _cart_view(container)


@router.delete("/cart/items/{item_id}")
async def remove_item(item_id: str, request: Request) -> dict[str, object]:
    """Remove a line. Unknown lines are ignored."""
    container = _container(request)
    container.coordinator.remove_item(item_id)
    return _cart_view(container)


@router.delete("/cart")
async def clear_cart(request: Request) -> dict[str, object]:
    """Empty the cart."""
    container = _container(request)
    container.coordinator.clear()
    return _cart_view(container)


@router.put("/cart/pricing-inputs")
async def update_pricing_inputs(
    payload: PricingInputsRequest, request: Request
) -> dict[str, object]:
    """Update tip, promo, loyalty, insurance, schedule or location."""
    coordinator = _container(request).coordinator
    fields = payload.model_fields_set
    try:
        if "tip" in fields and payload.tip is not None:
            coordinator.set_tip(payload.tip)
        if "promo_code" in fields:
            coordinator.set_promo_code(payload.promo_code)
        if "loyalty_points" in fields and payload.loyalty_points is not None:
            coordinator.set_loyalty_points(payload.loyalty_points)
        if "is_insured" in fields and payload.is_insured is not None:
            coordinator.set_insured(payload.is_insured)
        if "scheduled_for" in fields:
            coordinator.set_scheduled_for(payload.scheduled_for)
        if fields & {"city", "distance_km"}:
            coordinator.set_delivery_location(
                payload.city or coordinator.inputs.city,
                (
                    payload.distance_km
                    if payload.distance_km is not None
                    else coordinator.inputs.distance_km
                ),
            )
    except InvalidPricingInput as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)
        ) from exc
    return _pricing_view(_container(request))


@router.get("/cart/pricing")
async def get_pricing(request: Request) -> dict[str, object]:
    """Return the last accepted breakdown with busy/error indicators."""
    return _pricing_view(_container(request))


@router.get("/notifications")
async def drain_notifications(request: Request) -> dict[str, object]:
    """Return and clear pending notifications."""
    notifications = _container(request).notifier.drain()
    return {
        "notifications": [
            {
                "title": notification.title,
                "message": notification.message,
                "level": notification.level,
                "item_id": notification.item_id,
            }
            for notification in notifications
        ]
    }


@router.post("/checkout")
async def checkout(payload: CheckoutRequest, request: Request) -> dict[str, object]:
    """Submit the order once the cart has settled."""
    container = _container(request)
    try:
        confirmation = await container.checkout_service.submit(
            payment_provider=payload.payment_provider,
            payment_method_type=payload.payment_method_type,
            delivery_address=payload.delivery_address,
            special_instructions=payload.special_instructions,
        )
    except EmptyCart as exc:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except (CartNotSettled, PricingNotReady) as exc:
        raise HTTPException(status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except OrderSubmissionFailed as exc:
        raise HTTPException(status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    return {
        "order_id": confirmation.order_id,
        "order_number": confirmation.order_number,
        "payment_link": confirmation.payment_link,
    }


def _cart_view(container: AppContainer) -> dict[str, object]:
    coordinator = container.coordinator
    store = container.store
    return {
        "restaurant_id": store.restaurant_id,
        "items": [
            _item_view(item, coordinator.is_updating(item.id)) for item in store.items
        ],
        "total_price": str(store.get_total_price()),
        "total_items": store.get_total_item_count(),
        "has_pending_operations": coordinator.has_pending_operations(),
    }


def _item_view(item: CartItem, updating: bool) -> dict[str, object]:
    return {
        "id": item.id,
        "menu_item_id": item.menu_item_id,
        "name": item.name,
        "price": str(item.price),
        "quantity": item.quantity,
        "restaurant_id": item.restaurant_id,
        "restaurant_name": item.restaurant_name,
        "special_instructions": item.special_instructions,
        "options": list(item.options),
        "updating": updating,
    }


def _pricing_view(container: AppContainer) -> dict[str, object]:
    coordinator = container.coordinator
    state = coordinator.pricing_state
    return {
        "breakdown": _breakdown_view(state.breakdown),
        "is_current": state.is_current(coordinator.pricing_request()),
        "busy": state.busy,
        "error": state.error,
        "inputs": {
            "city": coordinator.inputs.city,
            "distance_km": coordinator.inputs.distance_km,
            "tip": str(coordinator.inputs.tip),
            "promo_code": coordinator.inputs.promo_code,
            "loyalty_points": coordinator.inputs.loyalty_points,
            "is_insured": coordinator.inputs.is_insured,
            "scheduled_for": (
                coordinator.inputs.scheduled_for.isoformat()
                if coordinator.inputs.scheduled_for
                else None
            ),
        },
    }


def _breakdown_view(breakdown: PricingBreakdown | None) -> dict[str, str] | None:
    if breakdown is None:
        return None
    return {
        "items_subtotal": str(breakdown.items_subtotal),
        "delivery_fee": str(breakdown.delivery_fee),
        "service_fee": str(breakdown.service_fee),
        "processing_fee": str(breakdown.processing_fee),
        "tax": str(breakdown.tax),
        "tip": str(breakdown.tip),
        "insurance_fee": str(breakdown.insurance_fee),
        "discounts": str(breakdown.total_discounts),
        "final_total": str(breakdown.final_total),
    }
