from collections import deque

from flask import current_app


class Outbox:
    """Outgoing account emails (confirmation and recovery links).

    Messages are kept in a bounded queue for the delivery worker and tests to
    drain; the send itself is only logged here.
    """

    def __init__(self, maxlen=200):
        self.messages = deque(maxlen=maxlen)

    def send(self, kind: str, email: str, link: str) -> None:
        self.messages.append({'kind': kind, 'email': email, 'link': link})
        current_app.logger.info(f"[mail] queued {kind} email to={email}")

    def latest(self, kind: str, email: str):
        for message in reversed(self.messages):
            if message['kind'] == kind and message['email'] == email:
                return message
        return None


def get_outbox(app=None) -> Outbox:
    return (app or current_app).extensions['tasting_outbox']
