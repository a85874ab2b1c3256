"""
Long Poll Bot Example

Echo bot for a community: subscribes to Bots Long Poll and answers every
new message. Set VK_API_ACCESS_TOKEN (community token) and VK_GROUP_ID.
"""

import asyncio
import os
import random

from vkclient import AsyncVkApi, Cursor, LongPollFatalError, VkApi, load_from_env

GROUP_ID = int(os.environ.get("VK_GROUP_ID", "1"))


def sync_bot():
    """Blocking bot on VkApi."""
    config = load_from_env(log_enabled=True, log_level="INFO", log_format="colored")

    with VkApi(config=config) as api:
        while True:
            server = api.call("groups.getLongPollServer", {"group_id": GROUP_ID})
            try:
                with api.subscribe(Cursor.from_response(server), wait=25) as events:
                    for event in events:
                        if event.get("type") != "message_new":
                            continue
                        message = event["object"]["message"]
                        api.call("messages.send", {
                            "peer_id": message["peer_id"],
                            "message": message.get("text") or "...",
                            "random_id": random.getrandbits(31),
                        })
            except LongPollFatalError as e:
                # key expired or history lost: fetch a new server and key
                print(f"Long poll restarted: {e}")


async def async_bot():
    """Same bot on AsyncVkApi."""
    async with AsyncVkApi(config=load_from_env()) as api:
        server = await api.call("groups.getLongPollServer", {"group_id": GROUP_ID})
        async with api.subscribe(Cursor.from_response(server)) as events:
            async for event in events:
                print(event.get("type"))


if __name__ == "__main__":
    if os.environ.get("VK_ASYNC"):
        asyncio.run(async_bot())
    else:
        sync_bot()
