"""Shopify orders/create 웹훅 페이로드 중 이행에 필요한 부분만 담은 모델."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


class LineItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    product_id: str | None = None
    variant_id: str | None = None
    title: str = ""
    quantity: int = 1

    @field_validator("id", "product_id", "variant_id", mode="before")
    @classmethod
    def _ids_to_str(cls, value: object) -> object:
        if isinstance(value, int):
            return str(value)
        return value

    @property
    def product_ref(self) -> str | None:
        # 커스텀 상품(product_id 없음)은 카탈로그에서 찾을 수 없으므로 None
        return self.product_id


class OrderEvent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    email: str | None = None
    name: str | None = None
    line_items: list[LineItem] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def _id_to_str(cls, value: object) -> object:
        if isinstance(value, int):
            return str(value)
        return value
