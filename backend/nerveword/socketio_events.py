from flask import request
from flask_socketio import emit
from pydantic import ValidationError

from nerveword import WS_NAMESPACE, socketio
from nerveword.context import get_services
from nerveword.schemas import JoinSessionMessage


def _get_sid() -> str:
    # request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def handle_disconnect(*_args):
    get_services().broadcaster.disconnect(_get_sid())


def handle_join_session(data):
    """Subscribe this socket to a session's events. Connecting alone subscribes to nothing."""
    try:
        message = JoinSessionMessage.model_validate(data or {})
    except ValidationError:
        emit('error', {'message': 'session_id is required'})
        return
    services = get_services()
    if services.store.get_session(message.session_id) is None:
        emit('error', {'message': 'Session not found'})
        return
    services.broadcaster.join(message.session_id, _get_sid())
    emit('joined', {'session_id': message.session_id})


def handle_leave_session(data):
    try:
        message = JoinSessionMessage.model_validate(data or {})
    except ValidationError:
        emit('error', {'message': 'session_id is required'})
        return
    get_services().broadcaster.leave(message.session_id, _get_sid())
    emit('left', {'session_id': message.session_id})


def handle_message(data):
    # Plain-websocket clients wrap every request as {type, ...}
    message_type = (data or {}).get('type') if isinstance(data, dict) else None
    if message_type == 'join_session':
        handle_join_session(data)
    elif message_type == 'leave_session':
        handle_leave_session(data)
    else:
        emit('error', {'message': f'Unsupported message type: {message_type}'})


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers() -> None:
    """Register Socket.IO event handlers on namespace '/ws'.

    Session broadcasts are emitted on '/ws' only, so that is the one
    namespace clients subscribe through.
    """
    socketio.on_event('connect', handle_connect, namespace=WS_NAMESPACE)
    socketio.on_event('disconnect', handle_disconnect, namespace=WS_NAMESPACE)
    socketio.on_event('join_session', handle_join_session, namespace=WS_NAMESPACE)
    socketio.on_event('leave_session', handle_leave_session, namespace=WS_NAMESPACE)
    socketio.on_event('message', handle_message, namespace=WS_NAMESPACE)
    socketio.on_event('ping', handle_ping, namespace=WS_NAMESPACE)
