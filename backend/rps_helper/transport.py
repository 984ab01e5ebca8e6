import html

from rps_helper import socketio


def escape(text) -> str:
    if text is None:
        return ''
    return html.escape(str(text), quote=True)


class SocketIOTransport:
    """Outbound chat operations, emitted to the gateway room.

    Every call is fire-and-forget: a failed emit is logged and swallowed so
    state progression never waits on the chat service.
    """

    def __init__(self, app, namespace=None, room=None):
        self.app = app
        self.namespace = namespace or app.config.get('TRANSPORT_NAMESPACE', '/ws')
        self.room = room or app.config.get('TRANSPORT_ROOM', 'transport')

    def _emit(self, event: str, payload: dict) -> None:
        try:
            socketio.emit(event, payload, to=self.room, namespace=self.namespace)
        except Exception as exc:
            self.app.logger.error(f"[transport-fail] event={event} chat={payload.get('chat_id')} error={exc}")

    def send_message(self, chat_id, text, buttons=None):
        self._emit('send_message', {
            'chat_id': chat_id,
            'text': text,
            'parse_mode': 'HTML',
            'buttons': buttons or [],
        })

    def edit_message(self, chat_id, message_id, text, buttons=None):
        if message_id is None:
            self.send_message(chat_id, text, buttons)
            return
        self._emit('edit_message', {
            'chat_id': chat_id,
            'message_id': message_id,
            'text': text,
            'parse_mode': 'HTML',
            'buttons': buttons or [],
        })

    def delete_message(self, chat_id, message_id):
        if message_id is None:
            return
        self._emit('delete_message', {'chat_id': chat_id, 'message_id': message_id})

    def answer_action(self, action_id, text=None, show_alert=False):
        if action_id is None:
            return
        self._emit('answer_action', {'action_id': action_id, 'text': text, 'show_alert': show_alert})
