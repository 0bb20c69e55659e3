from typing import Optional

from pydantic import BaseModel


class StockUpdateRequest(BaseModel):
    product_id: int
    stock: Optional[int] = None
    in_stock: Optional[bool] = None
