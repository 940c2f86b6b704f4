import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from auth import verify_admin
from config import RELAY_HOST, RELAY_PORT
from logger_helper import create_logging_middleware, setup_logger
from relay import RelayServer, WebSocketChannel

logger = setup_logger()


# Request/Response Models
class LoginRequest(BaseModel):
    username: str
    password: str


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Own one relay for the lifetime of the process."""
    app.state.relay = RelayServer()
    logger.info(f"Relay started on {RELAY_HOST}:{RELAY_PORT}")

    yield

    logger.info(f"Relay shutting down with {len(app.state.relay.channels)} open channels")


app = FastAPI(
    title="Attendance Sync Relay",
    description="Relays roster and attendance snapshots between admin panels and face-scan kiosks",
    version="1.0.0",
    lifespan=lifespan
)

# CORS for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Demo only - restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

create_logging_middleware(app, logger)


@app.get("/health")
async def health_check():
    """Health check with connection and collection counts."""
    return {"status": "running", **app.state.relay.stats()}


@app.get("/snapshot")
async def get_snapshot():
    """Last-known copy of each collection held by the relay."""
    return app.state.relay.snapshot()


@app.post("/admin/login")
async def admin_login(request: LoginRequest):
    """Static credential check for the admin panel."""
    if not verify_admin(request.username, request.password):
        logger.warning(f"Failed admin login for {request.username!r}")
        raise HTTPException(status_code=401, detail="Invalid username or password")
    return {"message": "Login successful", "role": "publisher"}


@app.websocket("/ws")
async def relay_socket(websocket: WebSocket):
    """
    One relay channel per connection.

    Frames are handled one at a time; a bad frame is dropped without
    closing the connection, and a failure here never affects other channels.
    """
    relay: RelayServer = websocket.app.state.relay
    await websocket.accept()

    channel = WebSocketChannel(websocket, on_close=relay.disconnect)
    relay.connect(channel)
    writer = asyncio.create_task(channel.pump())
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                logger.info(f"Channel {channel.id} closed (code={message.get('code')})")
                break
            # Text and binary frames both carry JSON
            raw = message.get("text")
            if raw is None:
                raw = message.get("bytes")
            relay.handle_raw(channel, raw)
    finally:
        relay.disconnect(channel)
        writer.cancel()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=RELAY_HOST, port=RELAY_PORT)
