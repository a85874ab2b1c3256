"""
Basic VkApi Usage Examples

Demonstrates method calls, typed methods and content negotiation.
Set VK_API_ACCESS_TOKEN before running.
"""

from typing import Any, ClassVar, List as TypingList, Optional

from pydantic import BaseModel

from vkclient import ApiBusinessError, ApiMethod, List, VkApi, load_from_env


class User(BaseModel):
    id: int
    first_name: str
    last_name: str
    sex: Optional[int] = None


class UsersGet(ApiMethod):
    method_name: ClassVar[str] = "users.get"
    response_model: ClassVar[Any] = TypingList[User]

    user_ids: List
    fields: Optional[TypingList[str]] = None


def plain_call(api: VkApi):
    """Untyped call: the value of "response" as decoded."""
    print("\n=== users.get ===")

    users = api.call("users.get", {"user_ids": List([1, 2]), "fields": ["sex"]})
    for user in users:
        print(f"{user['id']}: {user['first_name']} {user['last_name']}")


def typed_call(api: VkApi):
    """Typed method with a pydantic response model."""
    print("\n=== Typed users.get ===")

    for user in api.call_method(UsersGet(user_ids=List([1]), fields=["sex"])):
        print(f"{user.id}: {user.first_name} (sex={user.sex})")


def business_error(api: VkApi):
    """VK errors arrive as ApiBusinessError."""
    print("\n=== Business error ===")

    try:
        api.call("wall.post", {"owner_id": 1, "message": "hi"})
    except ApiBusinessError as e:
        print(f"Code {e.code}: {e.error_msg}")


if __name__ == "__main__":
    config = load_from_env()
    with VkApi(config=config) as api:
        print(f"Negotiated profile: {api.pipeline.profile}")
        plain_call(api)
        typed_call(api)
        business_error(api)
