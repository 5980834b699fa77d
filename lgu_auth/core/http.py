from fastapi import Request


def client_ip(request: Request) -> str | None:
    """Peer address of the connection. Forwarding headers are client-controlled and ignored."""
    return request.client.host if request.client else None
