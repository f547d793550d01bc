from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response

from ..auth.dependencies import AdminUser, StaffUser
from ..db import serialize, serialize_many
from ..schemas.product import ProductCreate, ProductQuery, ProductUpdate, StockUpdate
from ..services.product_service import ProductService
from .deps import DbSession

router = APIRouter(prefix="/products", tags=["products"])


def get_product_service(db: DbSession) -> ProductService:
    return ProductService(db)


Products = Annotated[ProductService, Depends(get_product_service)]


@router.post("", status_code=201)
def create_product(body: ProductCreate, _: StaffUser, products: Products):
    return serialize(products.create(body))


@router.get("")
def list_products(query: Annotated[ProductQuery, Query()], products: Products):
    return products.find_all(query)


@router.get("/category/{category}")
def list_products_in_category(category: str, products: Products):
    return serialize_many(products.find_by_category(category))


@router.get("/{product_id}")
def get_product(product_id: int, products: Products):
    return serialize(products.find_one(product_id))


@router.patch("/{product_id}")
def update_product(product_id: int, body: ProductUpdate, _: StaffUser, products: Products):
    return serialize(products.update(product_id, body))


@router.patch("/{product_id}/stock")
def update_product_stock(product_id: int, body: StockUpdate, _: StaffUser, products: Products):
    return serialize(products.update_stock(product_id, body.quantity))


@router.delete("/{product_id}", status_code=204)
def delete_product(product_id: int, _: AdminUser, products: Products):
    products.remove(product_id)
    return Response(status_code=204)
