"""Pass-through of write requests (buy, rent, release) to the write service."""
from fastapi import APIRouter, Depends, Request, Response

from api.dependencies import get_visibility_policy, get_write_proxy
from core.access_policy import VisibilityPolicy
from services.write_proxy import WRITE_METHODS, WriteProxy

router = APIRouter(prefix="/api/public", tags=["writes"])


@router.api_route("/{path:path}", methods=sorted(WRITE_METHODS), include_in_schema=False)
async def forward_write(
    path: str,  # noqa: ARG001
    request: Request,
    _policy: VisibilityPolicy = Depends(get_visibility_policy),
    proxy: WriteProxy = Depends(get_write_proxy),
) -> Response:
    """
    Forward a write request to the write service.

    The token must be valid here; the write service makes its own authorization
    decisions. The upstream status and body are returned unchanged.
    """
    forwarded = await proxy.forward(
        request.method,
        request.url.path,
        dict(request.headers),
        await request.body(),
        request.url.query,
    )
    return Response(
        content=forwarded.content,
        status_code=forwarded.status_code,
        media_type=forwarded.content_type,
    )
