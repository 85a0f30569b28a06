"""
WebSocket Manager for Real-time Slot Updates
Pushes the game state to connected presentation clients after every settlement
"""

from flask_socketio import emit, join_room, leave_room
from flask import request
from datetime import datetime, timezone
import logging

from ..schemas import AutoSpinStateSchema, SpinOutcomeSchema, build_game_state

logger = logging.getLogger(__name__)

SLOTS_ROOM = 'slots'


class WebSocketManager:
    def __init__(self, app=None, socketio=None):
        self.socketio = socketio
        self.engine = None
        self.scheduler = None
        self.connected_clients = set()

        if app and socketio:
            self.init_app(app)

    def init_app(self, app):
        """Register socket handlers and subscribe to engine and scheduler events"""
        self.engine = app.slot_engine
        self.scheduler = app.autospin_scheduler

        self.socketio.on_event('connect', self.handle_connect)
        self.socketio.on_event('disconnect', self.handle_disconnect)
        self.socketio.on_event('request_state', self.handle_request_state)

        self.engine.add_listener(self.on_engine_event)
        self.scheduler.add_listener(self.on_autospin_event)

    def handle_connect(self, auth=None):
        """Handle WebSocket connection: join the slots room and send the current state"""
        socket_id = request.sid
        self.connected_clients.add(socket_id)
        join_room(SLOTS_ROOM)
        logger.info(f"Client connected via WebSocket (socket: {socket_id})")
        emit('state_update', self._state_payload())
        return True

    def handle_disconnect(self, *args):
        socket_id = request.sid
        self.connected_clients.discard(socket_id)
        leave_room(SLOTS_ROOM)
        logger.info(f"Client {socket_id} disconnected from WebSocket")

    def handle_request_state(self, data=None):
        emit('state_update', self._state_payload())

    def _state_payload(self, event='snapshot', outcome=None):
        return {
            'type': 'state_update',
            'event': event,
            'state': build_game_state(self.engine, self.scheduler),
            'outcome': SpinOutcomeSchema().dump(outcome) if outcome is not None else None,
            'timestamp': datetime.now(timezone.utc).isoformat()
        }

    # Event Broadcasting Methods
    def on_engine_event(self, event, outcome=None):
        """Broadcast after a settled spin or a reset"""
        if not self.socketio:
            return
        self.socketio.emit('state_update', self._state_payload(event, outcome), to=SLOTS_ROOM)
        logger.debug(f"Broadcasted '{event}' state update to {len(self.connected_clients)} clients")

    def on_autospin_event(self, event, autospin_state):
        if not self.socketio:
            return
        self.socketio.emit(
            'autospin_status',
            {
                'type': 'autospin_status',
                'event': event,
                'autospin': AutoSpinStateSchema().dump(autospin_state),
                'timestamp': datetime.now(timezone.utc).isoformat()
            },
            to=SLOTS_ROOM
        )

    def get_connected_clients_count(self):
        return len(self.connected_clients)

