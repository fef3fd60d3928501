from __future__ import annotations

from typing import Any, Dict, Optional

import httpx

from common.api_client import FoodSaverClient
from common.config import ClientConfig
from common.logging_config import configure_logging
from state.session_store import SessionStore
from state.storage import EncryptedFileStorage, JsonFileStorage, KeyValueStorage

from .root import RootRouter


def build_storage(config: ClientConfig) -> KeyValueStorage:
    if config.fernet_key:
        return EncryptedFileStorage(config.storage_path, fernet_key=config.fernet_key)
    return JsonFileStorage(config.storage_path)


def run_once(
    *,
    storage: Optional[KeyValueStorage] = None,
    http_client: Optional[httpx.Client] = None,
) -> Dict[str, Any]:
    """
    Cold start: configure, restore the session and take the routing decision.

    - Reads `ClientConfig` from the environment and configures logging.
    - Builds storage (encrypted when `FOODSAVER_FERNET_KEY` is set), the API
      client and the session store, then mounts the root router.
    - Restoring a session never touches the network.

    Returns: {"ok": True, "route": "auth"|"main"|"error", "user_id": str|None}.
    """
    config = ClientConfig.from_env()
    configure_logging(config.log_level)

    store_backend = storage if storage is not None else build_storage(config)
    with FoodSaverClient(
        store_backend,
        base_url=config.base_url,
        timeout=config.timeout,
        client=http_client,
    ) as api:
        store = SessionStore(api, store_backend)
        router = RootRouter(store)
        route = router.mount()
        router.unmount()

    user = store.user
    return {"ok": True, "route": route.value, "user_id": user.id if user else None}


def main() -> None:
    result = run_once()
    print(f"route={result['route']} user_id={result['user_id']}")


if __name__ == "__main__":
    main()
