"""
WebSocket game server.

Handles lobby management, player connections, and routing intents to the
session store. Rules live in the engine; this module only moves messages:
rejections go back to the sender, successful changes are broadcast to
everyone in the game.
"""

import asyncio
import json
import logging
import secrets
from dataclasses import dataclass

import websockets

from pandemic_server.config import ServerConfig
from pandemic_server.pandemic.engine import PandemicEngine
from pandemic_server.sessions import SessionStore

logger = logging.getLogger(__name__)


def generate_game_id():
    """Generate a short, human-friendly game code."""
    chars = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"  # no I/O/0/1 for clarity
    return "".join(secrets.choice(chars) for _ in range(6))


def generate_token():
    return secrets.token_urlsafe(24)


@dataclass
class Connection:
    game_id: str
    player_id: str
    websocket: object = None

    @property
    def connected(self):
        return self.websocket is not None


class GameServer:
    """
    Routes client messages to a SessionStore and fans results back out.
    """

    def __init__(self, store: SessionStore):
        self.store = store
        self.tokens: dict[str, Connection] = {}    # token -> Connection

    # ── Connection Bookkeeping ───────────────────────────────────────

    def _connections(self, game_id):
        return [c for c in self.tokens.values() if c.game_id == game_id]

    def _forget_game(self, game_id):
        for token in [t for t, c in self.tokens.items() if c.game_id == game_id]:
            del self.tokens[token]

    def _register(self, game_id, player_id, websocket):
        token = generate_token()
        self.tokens[token] = Connection(game_id=game_id, player_id=player_id, websocket=websocket)
        return token

    # ── WebSocket Handler ────────────────────────────────────────────

    async def handle_connection(self, websocket):
        """Main handler for a single WebSocket connection."""
        conn = None

        try:
            async for raw in websocket:
                try:
                    msg = json.loads(raw)
                except json.JSONDecodeError:
                    await self._send(websocket, {"type": "error", "message": "Invalid JSON"})
                    continue

                msg_type = msg.get("type")

                # ── Pre-auth messages ────────────────────────────
                if msg_type == "create":
                    conn = await self._handle_create(websocket, msg) or conn
                    continue

                if msg_type == "join":
                    conn = await self._handle_join(websocket, msg) or conn
                    continue

                if msg_type in ("auth", "reconnect"):
                    conn = await self._handle_auth(websocket, msg) or conn
                    continue

                # ── Authenticated messages ───────────────────────
                if conn is None:
                    await self._send(websocket, {"type": "error", "message": "Not authenticated. Send 'auth' first."})
                    continue

                if conn.game_id not in self.store:
                    await self._send(websocket, {"type": "error", "message": "Game no longer exists"})
                    continue

                if msg_type == "start":
                    await self._handle_start(conn)

                elif msg_type == "action":
                    await self._handle_action(conn, msg.get("action", {}))

                elif msg_type == "get_state":
                    await self._send_game_state(conn)

                elif msg_type == "reset":
                    await self._handle_reset(conn)

                elif msg_type == "chat":
                    await self._broadcast(conn.game_id, {
                        "type": "chat",
                        "from": conn.player_id,
                        "message": msg.get("message", ""),
                    })

                else:
                    await self._send(websocket, {"type": "error", "message": f"Unknown message type: {msg_type}"})

        except websockets.ConnectionClosed:
            pass
        finally:
            if conn is not None and conn.websocket is websocket:
                conn.websocket = None
                logger.info("Player %s disconnected from game %s", conn.player_id, conn.game_id)
                await self._broadcast(conn.game_id, {
                    "type": "lobby_update",
                    "players": self._player_list(conn.game_id),
                    "reason": f"{conn.player_id} disconnected",
                })

    # ── Message Handlers ─────────────────────────────────────────────

    async def _handle_create(self, websocket, msg):
        game_id = (msg.get("game_id") or generate_game_id()).upper()
        player_id = f"p_{generate_token()[:8]}"
        actor = self._actor_from(msg, player_id)
        try:
            state = self.store.create_session(game_id, actor)
        except ValueError as e:
            await self._send_error(websocket, e)
            return None

        token = self._register(game_id, player_id, websocket)
        await self._send(websocket, {
            "type": "created",
            "game_id": game_id,
            "player_id": player_id,
            "token": token,
            "state": state,
        })
        return self.tokens[token]

    async def _handle_join(self, websocket, msg):
        game_id = msg.get("game_id", "").upper()
        player_id = f"p_{generate_token()[:8]}"
        actor = self._actor_from(msg, player_id)
        try:
            self.store.join_session(game_id, actor)
        except ValueError as e:
            await self._send_error(websocket, e)
            return None

        token = self._register(game_id, player_id, websocket)
        await self._send(websocket, {
            "type": "joined",
            "game_id": game_id,
            "player_id": player_id,
            "token": token,
        })
        await self._broadcast(game_id, {
            "type": "lobby_update",
            "players": self._player_list(game_id),
            "reason": f"{actor['name']} joined",
        })
        await self._broadcast_game_state(game_id)
        return self.tokens[token]

    async def _handle_auth(self, websocket, msg):
        """Bind this websocket to the player a token was issued for."""
        conn = self.tokens.get(msg.get("token"))
        if conn is None:
            await self._send(websocket, {"type": "error", "message": "Invalid token"})
            return None
        if conn.game_id not in self.store:
            await self._send(websocket, {"type": "error", "message": "Game no longer exists"})
            return None

        conn.websocket = websocket
        await self._send(websocket, {
            "type": "authenticated",
            "game_id": conn.game_id,
            "player_id": conn.player_id,
        })
        await self._broadcast(conn.game_id, {
            "type": "lobby_update",
            "players": self._player_list(conn.game_id),
        })
        await self._send_game_state(conn)
        return conn

    async def _handle_start(self, conn):
        try:
            result = self.store.start_session(conn.game_id, conn.player_id)
        except ValueError as e:
            await self._send_error(conn.websocket, e)
            return

        await self._broadcast(conn.game_id, {"type": "game_started", "message": "Game has begun!"})
        await self._broadcast(conn.game_id, {"type": "game_log", "messages": result.log})
        await self._broadcast_game_state(conn.game_id)

        if result.game_over:
            await self._broadcast(conn.game_id, {
                "type": "game_over",
                "won": result.new_state["game_won"],
            })

    async def _handle_action(self, conn, action):
        try:
            result = self.store.apply_action(conn.game_id, conn.player_id, action)
        except ValueError as e:
            await self._send_error(conn.websocket, e, msg_type="action_error")
            return

        if result.log:
            await self._broadcast(conn.game_id, {"type": "game_log", "messages": result.log})

        await self._broadcast_game_state(conn.game_id)

        if result.game_over:
            await self._broadcast(conn.game_id, {
                "type": "game_over",
                "won": result.new_state["game_won"],
            })

    async def _handle_reset(self, conn):
        game_id = conn.game_id
        if not self.store.reset_session(game_id):
            await self._send(conn.websocket, {"type": "error", "message": "Failed to reset game"})
            return
        await self._broadcast(game_id, {"type": "reset", "game_id": game_id})
        self._forget_game(game_id)

    # ── Broadcasting ─────────────────────────────────────────────────

    async def _send(self, websocket, data):
        try:
            await websocket.send(json.dumps(data))
        except websockets.ConnectionClosed:
            pass

    async def _send_error(self, websocket, error, msg_type="error"):
        await self._send(websocket, {
            "type": msg_type,
            "code": getattr(error, "code", "invalid_request"),
            "message": str(error),
        })

    async def _broadcast(self, game_id, data):
        """Send the same message to all connected players in a game."""
        for conn in self._connections(game_id):
            if conn.connected:
                await self._send(conn.websocket, data)

    async def _send_game_state(self, conn):
        """Send the current snapshot to one player."""
        if not conn.connected:
            return
        try:
            view = self.store.get_player_view(conn.game_id, conn.player_id)
            phase_info = self.store.get_phase_info(conn.game_id)
            waiting_for = self.store.get_waiting_for(conn.game_id)
            valid_actions = self.store.get_valid_actions(conn.game_id, conn.player_id)
        except ValueError:
            return

        await self._send(conn.websocket, {
            "type": "game_state",
            "state": view,
            "phase_info": phase_info,
            "waiting_for": waiting_for,
            "valid_actions": valid_actions,
            "your_turn": conn.player_id in waiting_for,
        })

    async def _broadcast_game_state(self, game_id):
        for conn in self._connections(game_id):
            await self._send_game_state(conn)

    # ── Helpers ──────────────────────────────────────────────────────

    def _actor_from(self, msg, player_id):
        player = msg.get("player") or {}
        return {
            "id": player_id,
            "name": player.get("name") or msg.get("name") or "Player",
            "role": player.get("role") or msg.get("role"),
            "cards": player.get("cards") or [],
        }

    def _player_list(self, game_id):
        snapshot = self.store.get_snapshot(game_id)
        if snapshot is None:
            return []
        online = {c.player_id for c in self._connections(game_id) if c.connected}
        return [
            {"player_id": p["id"], "name": p["name"], "role": p["role"], "connected": p["id"] in online}
            for p in snapshot["players"]
        ]

    # ── Maintenance ──────────────────────────────────────────────────

    async def cleanup_loop(self, interval=None):
        """Periodically evict idle games and forget their tokens."""
        interval = ServerConfig.CLEANUP_INTERVAL if interval is None else interval
        while True:
            await asyncio.sleep(interval)
            self.sweep()

    def sweep(self):
        evicted = self.store.evict_idle()
        for game_id in {c.game_id for c in self.tokens.values()}:
            if game_id not in self.store:
                self._forget_game(game_id)
        if evicted:
            logger.info("Cleaned up %d inactive games", evicted)
        return evicted


# ── Server Entry Point ───────────────────────────────────────────────

async def run_server(host=None, port=None):
    host = host or ServerConfig.HOST
    port = port or ServerConfig.PORT

    server = GameServer(SessionStore(PandemicEngine()))
    cleanup = asyncio.create_task(server.cleanup_loop())

    logger.info("Game server starting on ws://%s:%s", host, port)
    try:
        async with websockets.serve(server.handle_connection, host, port):
            await asyncio.Future()  # run forever
    finally:
        cleanup.cancel()


def main():
    logging.basicConfig(
        level=ServerConfig.LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    asyncio.run(run_server())


if __name__ == "__main__":
    main()
