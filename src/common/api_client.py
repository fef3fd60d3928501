from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from state.storage import CREDENTIAL_KEYS, TOKEN_KEY, KeyValueStorage

from .models import (
    AuthResponse,
    CartItem,
    DailyStats,
    DuplicateCheck,
    Envelope,
    Food,
    FoodJournal,
    FoodStatistics,
    Page,
    PointTransaction,
    Recipe,
    RecipeImport,
    ScanFoodRequest,
    User,
    UserPoints,
    Voucher,
    VoucherRedemption,
)


logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:5000/api/v1"
DEFAULT_TIMEOUT = 30.0

M = TypeVar("M", bound=BaseModel)


class FoodSaverError(RuntimeError):
    """Base error for the FoodSaver API client."""


class FoodSaverTransportError(FoodSaverError):
    """Network unreachable, DNS failure or timeout."""


class FoodSaverDecodeError(FoodSaverError):
    """Response body is not a valid envelope or payload."""


class FoodSaverApiError(FoodSaverError):
    """Backend answered with a non-2xx status.

    `message` carries the backend's own wording (e.g. "Insufficient points")
    so screens can show it verbatim.
    """

    def __init__(self, status_code: int, message: str, payload: Any = None) -> None:
        super().__init__(f"HTTP {status_code}: {message}")
        self.status_code = status_code
        self.message = message
        self.payload = payload


class FoodSaverUnauthorizedError(FoodSaverApiError):
    """Credential missing, invalid or expired (HTTP 401)."""


def _error_message(resp: httpx.Response) -> tuple[str, Any]:
    try:
        body = resp.json()
    except Exception:
        return (resp.text[:200] or resp.reason_phrase, None)
    if isinstance(body, dict):
        msg = body.get("error") or body.get("message")
        if isinstance(msg, str) and msg:
            return (msg, body)
    return (resp.reason_phrase, body)


def _as_list(data: Any) -> List[Any]:
    if data is None:
        return []
    if isinstance(data, list):
        return data
    return [data]


class FoodSaverClient:
    """
    REST client for the FoodSaver backend.

    Notes
    - A request hook attaches `Authorization: Bearer <token>` when storage holds
      a token; without one the header is omitted entirely.
    - A response hook clears the persisted credential record on HTTP 401. It
      does not touch the in-memory session; the error still reaches the caller.
    - Each public method maps to one endpoint and returns the unwrapped `data`
      of the `{success, data, meta}` envelope. No retries, no caching.
    - `timeout` applies to every request, including on an injected client.
      Hooks added to an injected client are removed again by `close()`.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self._storage = storage
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._owns_client = client is None
        self._client = client or httpx.Client(
            timeout=self._timeout,
            headers={"Content-Type": "application/json"},
        )
        hooks = self._client.event_hooks
        hooks["request"].append(self._attach_token)
        hooks["response"].append(self._clear_on_unauthorized)
        self._client.event_hooks = hooks

    def close(self) -> None:
        if self._owns_client:
            self._client.close()
            return
        # Leave a borrowed client as it was handed in
        hooks = self._client.event_hooks
        hooks["request"] = [h for h in hooks["request"] if h != self._attach_token]
        hooks["response"] = [h for h in hooks["response"] if h != self._clear_on_unauthorized]
        self._client.event_hooks = hooks

    def __enter__(self) -> "FoodSaverClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # --------------- Hooks ---------------
    def _attach_token(self, request: httpx.Request) -> None:
        token = self._storage.get_item(TOKEN_KEY)
        if token:
            request.headers["Authorization"] = f"Bearer {token}"

    def _clear_on_unauthorized(self, response: httpx.Response) -> None:
        if response.status_code != 401:
            return
        logger.info("Received 401 for %s %s; clearing stored credentials",
                    response.request.method, response.request.url.path)
        try:
            self._storage.multi_remove(CREDENTIAL_KEYS)
        except Exception:
            # The 401 itself must still reach the caller
            logger.warning("Failed to clear stored credentials after 401", exc_info=True)

    # --------------- Internal ---------------
    def _url(self, path: str) -> str:
        return f"{self._base_url}/{path.lstrip('/')}"

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json_body: Any = None,
    ) -> Envelope:
        query = {k: v for k, v in (params or {}).items() if v is not None}
        try:
            resp = self._client.request(
                method,
                self._url(path),
                params=query or None,
                json=json_body,
                timeout=self._timeout,
            )
        except httpx.TransportError as exc:
            raise FoodSaverTransportError(f"{method} {path} failed: {exc}") from exc

        logger.debug("%s %s -> %d", method, path, resp.status_code)
        if not resp.is_success:
            message, payload = _error_message(resp)
            if resp.status_code == 401:
                raise FoodSaverUnauthorizedError(resp.status_code, message, payload)
            raise FoodSaverApiError(resp.status_code, message, payload)

        if resp.status_code == 204 or not resp.content:
            return Envelope()
        try:
            return Envelope.model_validate(resp.json())
        except (ValueError, ValidationError) as exc:
            raise FoodSaverDecodeError(f"Malformed envelope from {method} {path}") from exc

    def _data(self, method: str, path: str, **kwargs: Any) -> Any:
        return self._request(method, path, **kwargs).data

    @staticmethod
    def _parse(model: Type[M], data: Any) -> M:
        try:
            return model.model_validate(data)
        except ValidationError as ve:
            raise FoodSaverDecodeError(f"Failed to parse {model.__name__}: {ve}") from ve

    @classmethod
    def _parse_list(cls, model: Type[M], data: Any) -> List[M]:
        return [cls._parse(model, item) for item in _as_list(data)]

    def _page(self, model: Type[M], path: str, params: Dict[str, Any]) -> Page[M]:
        env = self._request("GET", path, params=params)
        return Page[model](items=self._parse_list(model, env.data), total=env.total())  # type: ignore[valid-type]

    @staticmethod
    def _body(payload: Any) -> Any:
        if isinstance(payload, BaseModel):
            return payload.model_dump(exclude_none=True)
        return payload

    # --------------- Auth ---------------
    def register(self, name: str, email: str, password: str) -> AuthResponse:
        data = self._data("POST", "/auth/register",
                          json_body={"name": name, "email": email, "password": password})
        return self._parse(AuthResponse, data)

    def login(self, email: str, password: str) -> AuthResponse:
        data = self._data("POST", "/auth/login", json_body={"email": email, "password": password})
        return self._parse(AuthResponse, data)

    def get_profile(self) -> User:
        return self._parse(User, self._data("GET", "/auth/me"))

    def update_profile(self, profile: Dict[str, Any]) -> User:
        return self._parse(User, self._data("PUT", "/auth/profile", json_body=profile))

    # --------------- Foods ---------------
    def get_foods(self, page: int = 1, limit: int = 20) -> Page[Food]:
        return self._page(Food, "/foods", {"page": page, "limit": limit})

    def get_food(self, food_id: str) -> Food:
        return self._parse(Food, self._data("GET", f"/foods/{food_id}"))

    def create_food(self, food: Dict[str, Any]) -> Food:
        return self._parse(Food, self._data("POST", "/foods", json_body=self._body(food)))

    def scan_food(self, scan: ScanFoodRequest) -> Dict[str, Any]:
        """Run recognition on an uploaded image. The result is not saved."""
        return self._data("POST", "/foods/scan", json_body=self._body(scan))

    def add_scanned_food(self, food: Dict[str, Any]) -> Food:
        return self._parse(Food, self._data("POST", "/foods/add-scanned", json_body=food))

    def check_duplicate(self, name: str) -> DuplicateCheck:
        data = self._data("GET", "/foods/check-duplicate", params={"name": name})
        return self._parse(DuplicateCheck, data)

    def update_stock(self, food_id: str, quantity: float) -> Food:
        data = self._data("PATCH", f"/foods/{food_id}/stock", json_body={"quantity": quantity})
        return self._parse(Food, data)

    def update_food(self, food_id: str, food: Dict[str, Any]) -> Food:
        return self._parse(Food, self._data("PUT", f"/foods/{food_id}", json_body=food))

    def delete_food(self, food_id: str) -> None:
        self._request("DELETE", f"/foods/{food_id}")

    def get_expiring_foods(self, days: int = 3) -> List[Food]:
        return self._parse_list(Food, self._data("GET", "/foods/expiring", params={"days": days}))

    def get_food_stats(self) -> FoodStatistics:
        return self._parse(FoodStatistics, self._data("GET", "/foods/statistics"))

    def get_donatable_foods(self) -> List[Food]:
        return self._parse_list(Food, self._data("GET", "/foods/donatable"))

    # --------------- Journals ---------------
    def get_journals(self, page: int = 1, limit: int = 20) -> Page[FoodJournal]:
        return self._page(FoodJournal, "/journals", {"page": page, "limit": limit})

    def create_journal(self, entry: Dict[str, Any]) -> FoodJournal:
        return self._parse(FoodJournal, self._data("POST", "/journals", json_body=entry))

    def update_journal(self, journal_id: str, entry: Dict[str, Any]) -> FoodJournal:
        return self._parse(FoodJournal, self._data("PUT", f"/journals/{journal_id}", json_body=entry))

    def delete_journal(self, journal_id: str) -> None:
        self._request("DELETE", f"/journals/{journal_id}")

    def get_daily_stats(self, day: str) -> DailyStats:
        """`day` is an ISO date (YYYY-MM-DD)."""
        return self._parse(DailyStats, self._data("GET", "/journals/daily-stats", params={"date": day}))

    def get_weekly_stats(self) -> List[DailyStats]:
        return self._parse_list(DailyStats, self._data("GET", "/journals/weekly-stats"))

    def get_ai_nutrition_analysis(self) -> Dict[str, Any]:
        return self._data("GET", "/journals/ai-nutrition-analysis")

    # --------------- Recipes ---------------
    def get_recipes(self, page: int = 1, limit: int = 20) -> Page[Recipe]:
        return self._page(Recipe, "/recipes", {"page": page, "limit": limit})

    def get_recipe(self, recipe_id: str) -> Recipe:
        return self._parse(Recipe, self._data("GET", f"/recipes/{recipe_id}"))

    def search_recipes(self, query: str, page: int = 1, limit: int = 20) -> Page[Recipe]:
        return self._page(Recipe, "/recipes/search", {"q": query, "page": page, "limit": limit})

    def get_recommended_recipes(
        self,
        *,
        halal: Optional[bool] = None,
        vegetarian: Optional[bool] = None,
        vegan: Optional[bool] = None,
        max_prep_time: Optional[int] = None,
        difficulty: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Recipe]:
        params = {
            "halal": halal,
            "vegetarian": vegetarian,
            "vegan": vegan,
            "max_prep_time": max_prep_time,
            "difficulty": difficulty,
            "limit": limit,
        }
        return self._parse_list(Recipe, self._data("GET", "/recipes/recommended", params=params))

    def get_yummy_recipes(self, limit: int = 20, match_ingredients: bool = False) -> List[Dict[str, Any]]:
        params = {"limit": limit, "match_ingredients": match_ingredients}
        return _as_list(self._data("GET", "/recipes/yummy", params=params))

    def get_yummy_recipe_detail(self, slug: str) -> Dict[str, Any]:
        return self._data("GET", f"/recipes/yummy/{slug}")

    def import_recipe_from_yummy(self, slug: str) -> Recipe:
        return self._parse(Recipe, self._data("POST", f"/recipes/import/yummy/{slug}"))

    def import_recipes_from_yummy(self, limit: int = 10) -> RecipeImport:
        data = self._data("POST", "/recipes/import/yummy", params={"limit": limit})
        return self._parse(RecipeImport, data)

    # --------------- Cart ---------------
    def get_cart(self) -> List[CartItem]:
        return self._parse_list(CartItem, self._data("GET", "/cart"))

    def add_to_cart(self, item: Dict[str, Any]) -> CartItem:
        return self._parse(CartItem, self._data("POST", "/cart", json_body=item))

    def update_cart_item(self, item_id: str, item: Dict[str, Any]) -> CartItem:
        return self._parse(CartItem, self._data("PUT", f"/cart/{item_id}", json_body=item))

    def delete_cart_item(self, item_id: str) -> None:
        self._request("DELETE", f"/cart/{item_id}")

    def mark_as_purchased(self, item_id: str) -> CartItem:
        return self._parse(CartItem, self._data("POST", f"/cart/{item_id}/purchase"))

    def get_purchase_history(self, page: int = 1, limit: int = 20) -> Page[CartItem]:
        return self._page(CartItem, "/cart/history", {"page": page, "limit": limit})

    # --------------- Rewards ---------------
    def get_my_points(self) -> UserPoints:
        return self._parse(UserPoints, self._data("GET", "/rewards/points"))

    def get_point_history(self, page: int = 1, limit: int = 20) -> Page[PointTransaction]:
        return self._page(PointTransaction, "/rewards/history", {"page": page, "limit": limit})

    # --------------- Vouchers ---------------
    def get_vouchers(self) -> List[Voucher]:
        return self._parse_list(Voucher, self._data("GET", "/vouchers"))

    def get_voucher(self, voucher_id: str) -> Voucher:
        return self._parse(Voucher, self._data("GET", f"/vouchers/{voucher_id}"))

    def get_vouchers_by_category(self, category: str) -> List[Voucher]:
        return self._parse_list(Voucher, self._data("GET", f"/vouchers/category/{category}"))

    def redeem_voucher(self, voucher_id: str) -> VoucherRedemption:
        return self._parse(VoucherRedemption, self._data("POST", f"/vouchers/{voucher_id}/redeem"))

    def get_redemptions(self) -> List[VoucherRedemption]:
        return self._parse_list(VoucherRedemption, self._data("GET", "/vouchers/redemptions"))

    def mark_redemption_used(self, redemption_id: str) -> None:
        self._request("POST", f"/vouchers/redemptions/{redemption_id}/use")

    # --------------- Donations ---------------
    def get_donation_markets(self) -> List[Dict[str, Any]]:
        return _as_list(self._data("GET", "/donations/markets"))

    def get_donation_market(self, market_id: str) -> Dict[str, Any]:
        return self._data("GET", f"/donations/markets/{market_id}")

    def create_donation(
        self,
        food_id: str,
        market_id: int,
        quantity: float,
        *,
        notes: Optional[str] = None,
    ) -> Dict[str, Any]:
        body: Dict[str, Any] = {"food_id": food_id, "market_id": market_id, "quantity": quantity}
        if notes is not None:
            body["notes"] = notes
        return self._data("POST", "/donations", json_body=body)

    def get_my_donations(self) -> List[Dict[str, Any]]:
        return _as_list(self._data("GET", "/donations/my-donations"))

    def get_donation_stats(self) -> Dict[str, Any]:
        return self._data("GET", "/donations/stats")

    # --------------- Notifications ---------------
    def get_notifications(self) -> Any:
        return self._data("GET", "/notifications")

    def get_expiring_notifications(self) -> Any:
        return self._data("GET", "/notifications/expiring")

    def mark_notification_read(self, notification_id: str) -> None:
        self._request("POST", f"/notifications/{notification_id}/read")

    # --------------- Supermarkets ---------------
    def get_supermarkets(self) -> List[Dict[str, Any]]:
        return _as_list(self._data("GET", "/supermarkets"))

    def get_supermarket(self, supermarket_id: str) -> Dict[str, Any]:
        return self._data("GET", f"/supermarkets/{supermarket_id}")

    def get_supermarket_products(
        self, supermarket_id: str, category: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        data = self._data("GET", f"/supermarkets/{supermarket_id}/products",
                          params={"category": category or None})
        return _as_list(data)

    def search_products(self, query: str) -> List[Dict[str, Any]]:
        return _as_list(self._data("GET", "/supermarkets/products/search", params={"q": query}))

    def process_purchase(self, supermarket_id: str, items: List[Dict[str, Any]]) -> Dict[str, Any]:
        """`items` entries look like {product_id, quantity}."""
        body = {"supermarket_id": supermarket_id, "items": items}
        return self._data("POST", "/supermarkets/purchase", json_body=body)

    def get_transactions(self, page: int = 1, limit: int = 20) -> Any:
        return self._data("GET", "/supermarkets/transactions", params={"page": page, "limit": limit})

    def get_transaction(self, transaction_id: str) -> Dict[str, Any]:
        return self._data("GET", f"/supermarkets/transactions/{transaction_id}")

    # --------------- Orders ---------------
    def create_order(self, order: Dict[str, Any]) -> Dict[str, Any]:
        """
        Place a pickup order.

        `order` carries supermarket_id, supermarket_name, items (product_id,
        product_name, quantity, unit, price, subtotal), total_amount,
        discount_amount, final_amount and optionally voucher_code,
        voucher_title and redemption_id. Pricing and voucher rules are
        enforced by the backend.
        """
        return self._data("POST", "/orders", json_body=order)

    def get_orders(self, status: Optional[str] = None) -> List[Dict[str, Any]]:
        return _as_list(self._data("GET", "/orders", params={"status": status or None}))

    def get_order(self, order_id: str) -> Dict[str, Any]:
        return self._data("GET", f"/orders/{order_id}")

    def confirm_order_pickup(self, order_id: str) -> Dict[str, Any]:
        return self._data("POST", f"/orders/{order_id}/pickup")

    # --------------- Misc ---------------
    def health(self) -> Envelope:
        return self._request("GET", "/health")


__all__ = [
    "FoodSaverClient",
    "FoodSaverError",
    "FoodSaverTransportError",
    "FoodSaverDecodeError",
    "FoodSaverApiError",
    "FoodSaverUnauthorizedError",
]
