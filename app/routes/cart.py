from fastapi import APIRouter, Depends
from sqlmodel import Session
from app.database import get_session
from app.models.user import User
from app.schemas.cart_schemas import CartAddRequest, CartUpdateRequest
from app.services import cart_service
from app.utils.token import get_current_user  # JWT dependency


router = APIRouter()

# Add to Cart

@router.post("/items")
def add_to_cart(
    data: CartAddRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    cart = cart_service.add_item(
        session,
        current_user,
        product_id=data.product_id,
        quantity=data.quantity,
        size=data.size,
    )
    return {
        "success": True,
        "message": "Added to cart",
        "cart": cart_service.serialize_cart(session, cart, current_user.id),
    }


# View Cart

@router.get("")
def get_cart(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    return {"success": True, "cart": cart_service.get_cart(session, current_user)}


# Update Cart

@router.put("/items/{item_id}")
def update_cart_item(
    item_id: str,
    data: CartUpdateRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    cart = cart_service.update_item_quantity(session, current_user, item_id, data.quantity)
    return {
        "success": True,
        "message": "Quantity updated",
        "cart": cart_service.serialize_cart(session, cart, current_user.id),
    }


# Remove Cart

@router.delete("/items/{item_id}")
def remove_item(
    item_id: str,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    cart = cart_service.remove_item(session, current_user, item_id)
    return {
        "success": True,
        "message": "Item removed from cart",
        "cart": cart_service.serialize_cart(session, cart, current_user.id),
    }


# Clear Cart

@router.delete("/clear")
def clear_cart_endpoint(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    cart = cart_service.clear_cart(session, current_user)
    return {
        "success": True,
        "message": "Cart cleared",
        "cart": cart_service.serialize_cart(session, cart, current_user.id),
    }
