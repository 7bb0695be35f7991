from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional, Type

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator
from pydantic.alias_generators import to_camel

OrderStatus = Literal["pending", "processing", "completed", "cancelled"]


class CamelModel(BaseModel):
    # the admin front end speaks camelCase JSON
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


def dump(schema: Type[BaseModel], obj: Any) -> Dict[str, Any]:
    return schema.model_validate(obj).model_dump(mode="json", by_alias=True)


def dump_many(schema: Type[BaseModel], objs) -> List[Dict[str, Any]]:
    return [dump(schema, obj) for obj in objs]


# --- orders ---

class CustomerData(CamelModel):
    existing_customer_id: Optional[int] = None
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None

    @model_validator(mode="after")
    def _require_identity(self):
        if self.existing_customer_id is None and not (self.name and self.email):
            raise ValueError("name and email are required unless existingCustomerId is given")
        return self


class OrderItemCreate(CamelModel):
    product_id: int
    variant_id: int
    quantity: int = Field(gt=0)
    price: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    product_name: Optional[str] = None
    variant_name: Optional[str] = None


class OrderCreate(CamelModel):
    customer_data: CustomerData
    items: List[OrderItemCreate] = Field(min_length=1)
    total_amount: Decimal = Field(ge=0, max_digits=12, decimal_places=2)


class OrderUpdate(CamelModel):
    status: Optional[OrderStatus] = None
    admin_notes: Optional[str] = None


class OrderItemOut(CamelModel):
    id: int
    order_id: int
    product_id: int
    variant_id: int
    product_name: Optional[str]
    variant_name: Optional[str]
    price: Decimal
    quantity: int


class OrderOut(CamelModel):
    id: int
    order_number: str
    customer_id: Optional[int]
    customer_name: str
    customer_email: str
    customer_phone: Optional[str]
    total_amount: Decimal
    status: str
    admin_notes: Optional[str]
    created_at: datetime
    updated_at: datetime


class OrderDetailOut(OrderOut):
    items: List[OrderItemOut]


# --- customers ---

class CustomerCreate(CamelModel):
    name: str = Field(min_length=1)
    email: EmailStr
    phone: Optional[str] = None


class CustomerUpdate(CamelModel):
    name: str = Field(min_length=1)
    email: EmailStr
    phone: Optional[str] = None
    address: Optional[str] = None
    note: Optional[str] = None
    is_active: Optional[bool] = None


class BulkDelete(CamelModel):
    customer_ids: List[int] = Field(min_length=1)


class CustomerOut(CamelModel):
    id: int
    name: str
    email: str
    phone: Optional[str]
    address: Optional[str]
    note: Optional[str]
    role: str
    is_active: bool
    created_at: datetime


class CustomerBrief(CamelModel):
    id: int
    name: str
    email: str


# --- catalogue ---

class CategoryIn(CamelModel):
    name: str = Field(min_length=1)
    slug: Optional[str] = None
    description: Optional[str] = None
    sort_order: Optional[int] = None
    is_visible: Optional[bool] = None


class CategoryOut(CamelModel):
    id: int
    name: str
    slug: str
    description: Optional[str]
    sort_order: int
    is_visible: bool
    created_at: datetime
    updated_at: datetime


class CategoryBrief(CamelModel):
    id: int
    name: str
    slug: str


class ImageOut(CamelModel):
    id: int
    filename: str
    original_name: str
    alt: Optional[str]
    title: Optional[str]
    size: int
    mime_type: str
    url: str
    sort_order: int
    is_visible: bool
    created_at: datetime


class ImageUpdate(CamelModel):
    alt: Optional[str] = None
    title: Optional[str] = None
    sort_order: Optional[int] = None
    is_visible: Optional[bool] = None


class VariantIn(CamelModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    price: Decimal = Field(ge=0, max_digits=12, decimal_places=2)
    original_price: Optional[Decimal] = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    stock: int = 0
    is_default: bool = False
    is_visible: bool = True
    sort_order: Optional[int] = None


class VariantOut(CamelModel):
    id: int
    product_id: int
    name: str
    description: Optional[str]
    price: Decimal
    original_price: Optional[Decimal]
    stock: int
    is_default: bool
    is_visible: bool
    sort_order: int


class ProductImageOut(CamelModel):
    id: int
    sort_order: int
    image: ImageOut


class ProductCreate(CamelModel):
    name: str = Field(min_length=1)
    slug: str = Field(min_length=1)
    description: Optional[str] = None
    short_desc: Optional[str] = None
    features: List[str] = Field(default_factory=list)
    category_id: int
    variants: List[VariantIn] = Field(min_length=1)
    image_ids: List[int] = Field(default_factory=list)
    sort_order: int = 0
    is_visible: bool = True
    status: str = "active"


class ProductUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1)
    slug: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    short_desc: Optional[str] = None
    features: Optional[List[str]] = None
    category_id: Optional[int] = None
    variants: Optional[List[VariantIn]] = Field(default=None, min_length=1)
    image_ids: Optional[List[int]] = None
    sort_order: Optional[int] = None
    is_visible: Optional[bool] = None
    status: Optional[str] = None


class ProductOut(CamelModel):
    id: int
    name: str
    slug: str
    description: Optional[str]
    short_desc: Optional[str]
    features: List[str]
    category_id: int
    sort_order: int
    is_visible: bool
    status: str
    created_at: datetime
    updated_at: datetime
    category: CategoryBrief
    variants: List[VariantOut]
    images: List[ProductImageOut]


class ProductBrief(CamelModel):
    id: int
    name: str
    slug: str


# --- reviews ---

class ReviewIn(CamelModel):
    customer_id: int
    product_id: int
    rating: int = Field(ge=1, le=5)
    title: Optional[str] = None
    content: Optional[str] = None
    sort_order: int = 0
    is_visible: bool = True


class ReviewOut(CamelModel):
    id: int
    customer_id: int
    product_id: int
    rating: int
    title: Optional[str]
    content: Optional[str]
    sort_order: int
    is_visible: bool
    created_at: datetime
    updated_at: datetime
    customer: Optional[CustomerBrief]
    product: Optional[ProductBrief]


# --- content ---

class FAQIn(CamelModel):
    question: str = Field(min_length=1)
    answer: str = Field(min_length=1)
    sort_order: int = 0
    is_visible: bool = True


class FAQOut(CamelModel):
    id: int
    question: str
    answer: str
    sort_order: int
    is_visible: bool
    created_at: datetime


class SliderIn(CamelModel):
    title: str = Field(min_length=1)
    subtitle: Optional[str] = None
    content: Optional[str] = None
    button_text: Optional[str] = None
    button_link: Optional[str] = None
    image_id: Optional[int] = None
    sort_order: int = 0
    is_visible: bool = True


class SliderOut(CamelModel):
    id: int
    title: str
    subtitle: Optional[str]
    content: Optional[str]
    button_text: Optional[str]
    button_link: Optional[str]
    image_id: Optional[int]
    sort_order: int
    is_visible: bool
    image: Optional[ImageOut]


class PostIn(CamelModel):
    title: str = Field(min_length=1)
    slug: str = Field(min_length=1)
    excerpt: Optional[str] = None
    content: Optional[str] = None
    sort_order: int = 0
    is_visible: bool = True
    status: str = "published"
    thumbnail_id: Optional[int] = None


class PostOut(CamelModel):
    id: int
    title: str
    slug: str
    excerpt: Optional[str]
    content: Optional[str]
    sort_order: int
    is_visible: bool
    status: str
    thumbnail_id: Optional[int]
    thumbnail: Optional[ImageOut]
    created_at: datetime


# --- settings ---

class SettingOut(CamelModel):
    id: int
    key: str
    value: Optional[str]
    group: str
    label: Optional[str]
    description: Optional[str]
    type: str
    updated_at: datetime


class SettingValue(CamelModel):
    value: Any = Field(...)

    @model_validator(mode="after")
    def _value_not_null(self):
        if self.value is None:
            raise ValueError("value is required")
        return self


class SettingsBatch(CamelModel):
    settings: Dict[str, Any]
