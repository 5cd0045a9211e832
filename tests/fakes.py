"""
fakes.py - test doubles and small helpers shared across test modules
"""

import asyncio
import itertools

from stockbot.events import Actor

MASTER_KEY = "Tropa456"
MANAGER_ROLE = "900"


class RecordingMessenger:
    """
    In-memory Messenger: every call is recorded, message ids count up.
    Set `fail_sends` to make send() report failure.
    """

    def __init__(self):
        self._ids = itertools.count(1000)
        self.sent = []
        self.deleted = []
        self.fail_sends = False

    async def send(self, channel_id, *, content=None, notices=None, components=None, delete_after=None):
        if self.fail_sends:
            return None
        message_id = str(next(self._ids))
        self.sent.append(
            {
                "id": message_id,
                "channel_id": channel_id,
                "content": content,
                "notices": list(notices or []),
                "components": list(components or []),
                "delete_after": delete_after,
            }
        )
        return message_id

    async def delete(self, channel_id, message_id):
        self.deleted.append((channel_id, message_id))
        return True

    def titles(self):
        return [n.title for m in self.sent for n in m["notices"]]


def run(coro):
    return asyncio.run(coro)


def make_actor(user_id="1", tag="dono#0001", roles=None, is_bot=False) -> Actor:
    return Actor(user_id=user_id, tag=tag, role_ids=roles or [], is_bot=is_bot)
