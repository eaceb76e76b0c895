"""Room naming shared by the gateway and the publisher."""


def room_for_user(user_id) -> str:
    return f"user:{user_id}"
