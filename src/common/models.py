from __future__ import annotations

import json
from typing import Any, Dict, Generic, List, Optional, TypeVar, Union

from pydantic import BaseModel, Field, field_validator


T = TypeVar("T")


class User(BaseModel):
    id: str
    name: str = ""
    email: str = ""
    created_at: Optional[str] = None


class AuthResponse(BaseModel):
    token: str
    user: User


class PageMeta(BaseModel):
    """Pagination block of the envelope.

    The backend reports `total_items`; older endpoints use `total`.
    """

    total: Optional[int] = None
    total_items: Optional[int] = None
    page: Optional[int] = None
    limit: Optional[int] = None
    total_pages: Optional[int] = None

    def resolved_total(self) -> int:
        if self.total_items is not None:
            return self.total_items
        if self.total is not None:
            return self.total
        return 0


class Envelope(BaseModel):
    """
    Uniform wire wrapper returned by every backend endpoint.

    Shape: { success: bool, message?: str, data: T, meta?: {total?, page?, limit?} }
    """

    success: bool = True
    message: Optional[str] = None
    data: Any = None
    meta: Optional[PageMeta] = None

    def total(self) -> int:
        return self.meta.resolved_total() if self.meta is not None else 0


class Page(BaseModel, Generic[T]):
    items: List[T] = Field(default_factory=list)
    total: int = 0


# --------------- Food ---------------
class Food(BaseModel):
    id: str
    user_id: Optional[str] = None
    name: str = ""
    category: Optional[str] = None
    quantity: float = 0
    initial_quantity: Optional[float] = None
    unit: Optional[str] = None
    location: Optional[str] = None
    purchase_date: Optional[str] = None
    expiry_date: Optional[str] = None
    image_url: Optional[str] = None
    is_halal: Optional[bool] = None
    calories: Optional[float] = None
    protein: Optional[float] = None
    carbs: Optional[float] = None
    fat: Optional[float] = None
    notes: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class ScanFoodRequest(BaseModel):
    image_url: str
    location: str


class FoodStatistics(BaseModel):
    total_items: int = 0
    near_expiry: int = 0
    expired: int = 0
    by_category: Dict[str, int] = Field(default_factory=dict)
    by_location: Dict[str, int] = Field(default_factory=dict)


class DuplicateCheck(BaseModel):
    has_duplicates: bool = False
    duplicates: List[Food] = Field(default_factory=list)
    count: int = 0


# --------------- Journal ---------------
class FoodJournal(BaseModel):
    id: str
    user_id: Optional[str] = None
    food_id: Optional[str] = None
    food_name: str = ""
    meal_type: Optional[str] = None
    portion: Optional[float] = None
    unit: Optional[str] = None
    calories: Optional[float] = None
    protein: Optional[float] = None
    carbs: Optional[float] = None
    fat: Optional[float] = None
    notes: Optional[str] = None
    consumed_at: Optional[str] = None
    created_at: Optional[str] = None


class DailyStats(BaseModel):
    date: str
    total_calories: float = 0
    total_protein: float = 0
    total_carbs: float = 0
    total_fat: float = 0
    meal_count: int = 0


# --------------- Recipes ---------------
class Recipe(BaseModel):
    id: str
    title: str = ""
    description: Optional[str] = None
    image_url: Optional[str] = None
    prep_time: Optional[int] = None
    cook_time: Optional[int] = None
    servings: Optional[int] = None
    difficulty: Optional[str] = None
    category: Optional[str] = None
    cuisine: Optional[str] = None
    # Stored rows carry a JSON text column; API responses carry an object
    ingredients: Union[Dict[str, Any], List[Any], str] = Field(default_factory=dict)
    instructions: Optional[str] = None
    calories: Optional[float] = None
    protein: Optional[float] = None
    carbs: Optional[float] = None
    fat: Optional[float] = None
    is_halal: bool = False
    is_vegetarian: bool = False
    is_vegan: bool = False
    source: Optional[str] = None
    match_percentage: Optional[float] = None
    missing_items: Optional[List[str]] = None
    tips: Optional[str] = None
    created_at: Optional[str] = None

    @field_validator("ingredients", mode="before")
    @classmethod
    def _decode_ingredients(cls, value: Any) -> Any:
        if value is None:
            return {}
        if isinstance(value, str):
            try:
                decoded = json.loads(value)
            except ValueError:
                return value
            if isinstance(decoded, (dict, list)):
                return decoded
        return value


class RecipeImport(BaseModel):
    count: int = 0
    recipes: List[Recipe] = Field(default_factory=list)


# --------------- Cart ---------------
class CartItem(BaseModel):
    id: str
    user_id: Optional[str] = None
    name: str = ""
    quantity: float = 0
    unit: Optional[str] = None
    notes: Optional[str] = None
    is_purchased: bool = False
    purchased_at: Optional[str] = None
    created_at: Optional[str] = None


# --------------- Rewards ---------------
class UserPoints(BaseModel):
    id: str
    user_id: Optional[str] = None
    total_points: int = 0
    available_points: int = 0
    used_points: int = 0
    updated_at: Optional[str] = None


class PointTransaction(BaseModel):
    id: str
    user_points_id: Optional[str] = None
    # earn, spend or expired; unknown kinds pass through
    type: str
    amount: int = 0
    source: Optional[str] = None
    description: Optional[str] = None
    reference_id: Optional[str] = None
    created_at: Optional[str] = None


class Voucher(BaseModel):
    id: str
    code: Optional[str] = None
    title: str = ""
    description: Optional[str] = None
    discount_type: Optional[str] = None
    discount_value: float = 0
    points_required: int = 0
    store_name: Optional[str] = None
    terms: Optional[str] = None
    total_stock: int = 0
    remaining_stock: int = 0
    valid_from: Optional[str] = None
    valid_until: Optional[str] = None
    is_active: bool = True
    created_at: Optional[str] = None


class VoucherRedemption(BaseModel):
    id: str
    user_id: Optional[str] = None
    voucher_id: Optional[str] = None
    voucher: Optional[Voucher] = None
    redemption_code: Optional[str] = None
    status: Optional[str] = None
    redeemed_at: Optional[str] = None
    used_at: Optional[str] = None
    expires_at: Optional[str] = None


__all__ = [
    "AuthResponse",
    "CartItem",
    "DailyStats",
    "DuplicateCheck",
    "Envelope",
    "Food",
    "FoodJournal",
    "FoodStatistics",
    "Page",
    "PageMeta",
    "PointTransaction",
    "Recipe",
    "RecipeImport",
    "ScanFoodRequest",
    "User",
    "UserPoints",
    "Voucher",
    "VoucherRedemption",
]
