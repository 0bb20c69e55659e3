from fastapi import APIRouter, Depends
from sqlmodel import Session

from grocerycart.database import get_session
from grocerycart.dependencies.notifier import get_notifier
from grocerycart.models.product import Product
from grocerycart.models.user import User
from grocerycart.notifications.dispatcher import Notifier
from grocerycart.schemas.product_schemas import StockUpdateRequest
from grocerycart.services import inventory_service
from grocerycart.utils.token import get_current_seller

router = APIRouter()


# -------------------------
# SELLER : STOCK
# -------------------------
@router.post("/stock")
def update_stock(
    data: StockUpdateRequest,
    session: Session = Depends(get_session),
    _: User = Depends(get_current_seller),
    notifier: Notifier = Depends(get_notifier),
):
    try:
        signal = inventory_service.set_stock(
            session, data.product_id, stock=data.stock, in_stock=data.in_stock
        )
        session.commit()
    except Exception:
        session.rollback()
        raise

    notifier.enqueue_stock_signals([signal])

    product = session.get(Product, data.product_id)
    return {
        "success": True,
        "message": "Stock count updated." if data.stock is not None else "In-stock status updated.",
        "product_id": product.id,
        "stock": product.stock,
        "in_stock": product.in_stock,
    }
