"""FastAPI application factory."""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, ValidationError

from food_search.api.models import (
    ClientMessage,
    DeltaPayload,
    ErrorPayload,
    FoodPayload,
    SearchStatePayload,
)
from food_search.app_logging import configure_logging
from food_search.containers import AppContainer
from food_search.services.controller import FoodSearchController


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/foods/barcode/{code}")
    async def lookup_barcode(code: str, request: Request) -> dict[str, object]:
        """Look a product up by barcode."""
        state_container: AppContainer = request.app.state.container
        record = await state_container.barcode_service.lookup(code)
        if record is None:
            return {"food": None}
        return {"food": FoodPayload.from_record(record).model_dump()}

    @app.get("/foods/history")
    async def list_history(
        request: Request, q: str | None = None, limit: int = 20
    ) -> dict[str, object]:
        """Return previously selected foods, most used first."""
        state_container: AppContainer = request.app.state.container
        history = state_container.history_service
        if q:
            records = history.search_history(q)[:limit]
        else:
            records = [entry.record for entry in history.get_history(limit)]
        return {
            "foods": [FoodPayload.from_record(record).model_dump() for record in records]
        }

    @app.post("/foods/history")
    async def record_history(food: FoodPayload, request: Request) -> dict[str, str]:
        """Record a food selection."""
        state_container: AppContainer = request.app.state.container
        state_container.history_service.record_selection(food.to_record())
        return {"status": "ok"}

    @app.websocket("/ws/search")
    async def search_socket(websocket: WebSocket) -> None:
        """Progressive search: one controller per connection."""
        await websocket.accept()
        state_container: AppContainer = websocket.app.state.container
        controller = state_container.create_controller()
        outbox: asyncio.Queue[BaseModel] = asyncio.Queue()
        controller.subscribe(
            lambda state: outbox.put_nowait(SearchStatePayload.from_state(state)),
            lambda records: outbox.put_nowait(
                DeltaPayload(foods=[FoodPayload.from_record(r) for r in records])
            ),
        )
        sender = asyncio.create_task(_drain_outbox(websocket, outbox))
        try:
            while True:
                raw = await websocket.receive_json()
                try:
                    message = ClientMessage.model_validate(raw)
                except ValidationError:
                    outbox.put_nowait(ErrorPayload(detail="Invalid message."))
                    continue
                _handle_message(controller, message)
        except WebSocketDisconnect:
            logger.debug("Search socket disconnected")
        except Exception:
            logger.exception("Search socket failed")
        finally:
            await _stop_sender(sender)
            await controller.close()

    return app


def _handle_message(controller: FoodSearchController, message: ClientMessage) -> None:
    """Dispatch one client message to the controller."""
    if message.type == "text":
        controller.on_text_change(message.value or "")
    elif message.type == "search":
        controller.start_search(message.value or "")
    elif message.type == "load_more":
        controller.request_more()
    elif message.type == "select" and message.food is not None:
        controller.select(message.food.to_record())


async def _drain_outbox(websocket: WebSocket, outbox: "asyncio.Queue[BaseModel]") -> None:
    """Send queued payloads in order."""
    while True:
        payload = await outbox.get()
        await websocket.send_json(payload.model_dump())


async def _stop_sender(sender: "asyncio.Task[None]") -> None:
    """Cancel the outbox sender and collect how it ended."""
    sender.cancel()
    try:
        with suppress(asyncio.CancelledError):
            await sender
    except Exception:
        logging.getLogger(__name__).exception("Search socket sender failed")
