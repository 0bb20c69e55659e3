from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session

from grocerycart.database import get_session
from grocerycart.models.user import User
from grocerycart.schemas.cart_schemas import CartAddRequest, CartLine, CartOut, CartUpdateRequest
from grocerycart.services import cart_service
from grocerycart.utils.token import get_current_user  # JWT dependency

router = APIRouter()


# Add to Cart

@router.post("/add")
def add_to_cart(
    data: CartAddRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    item = cart_service.add_to_cart(session, current_user.id, data.product_id, data.quantity)
    return {"message": "Added to cart", "product_id": item.product_id, "quantity": item.quantity}


# View Cart

@router.get("/", response_model=CartOut)
def get_cart(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    lines = [
        CartLine(
            product_id=product.id,
            name=product.name,
            offer_price=product.offer_price,
            quantity=item.quantity,
            in_stock=product.in_stock,
            line_total=product.offer_price * item.quantity,
        )
        for item, product in cart_service.get_cart(session, current_user.id)
    ]
    return CartOut(items=lines, subtotal=sum(line.line_total for line in lines))


# Update Cart

@router.put("/update/{product_id}")
def update_cart_item(
    product_id: int,
    data: CartUpdateRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    item = cart_service.set_cart_quantity(session, current_user.id, product_id, data.quantity)
    return {"message": "Quantity updated", "product_id": item.product_id, "quantity": item.quantity}


# Remove Cart

@router.delete("/remove/{product_id}")
def remove_item(
    product_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    if not cart_service.remove_from_cart(session, current_user.id, product_id):
        raise HTTPException(404, "Item not found")

    return {"message": "Item removed from cart"}


# Clear Cart

@router.delete("/clear")
def clear_cart_endpoint(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    cart_service.clear_cart(session, current_user.id)
    session.commit()
    return {"message": "Cart cleared"}
