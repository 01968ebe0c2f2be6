"""Rendered-content endpoints for the editor-side script.

Routes
------
GET /breakdance-rankmath/v1/rendered-content?post_id=<int>   → rendered content
GET /breakdance-rankmath/v1/editor-config?post_id=<int>      → editor bootstrap

Both require a bearer token for a user allowed to edit the item; the check
runs before any rendering work.
"""

from __future__ import annotations

from typing import Annotated, Any, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request
from pydantic import BaseModel

from rankbridge.cms.models import User
from rankbridge.cms.users import get_user_by_token
from rankbridge.exceptions import NotAuthorized
from rankbridge.render.resolver import ContentResolver
from rankbridge.service import BridgeService

router = APIRouter()


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

class RenderedContentResponse(BaseModel):
    post_id: int
    content: str


class EditorConfigResponse(BaseModel):
    rest_url: str
    post_id: int
    mode: str
    debug: bool


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------

def get_service(request: Request) -> BridgeService:
    return request.app.state.bridge


def current_user(
    service: Annotated[BridgeService, Depends(get_service)],
    authorization: Annotated[Optional[str], Header()] = None,
) -> Optional[User]:
    """Resolve ``Authorization: Bearer <token>`` to a user, if any."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return get_user_by_token(service.cms.conn, token.strip())


def request_resolver(service: Annotated[BridgeService, Depends(get_service)]) -> ContentResolver:
    """One resolver, and so one cache, per HTTP request."""
    return service.new_resolver()


PostId = Annotated[int, Query(ge=1, description="Content item id.")]
Service = Annotated[BridgeService, Depends(get_service)]
CurrentUser = Annotated[Optional[User], Depends(current_user)]
RequestResolver = Annotated[ContentResolver, Depends(request_resolver)]


def _authorize(service: BridgeService, user: Optional[User], post_id: int) -> None:
    try:
        service.authorize_edit(user, post_id)
    except NotAuthorized as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get("/rendered-content", response_model=RenderedContentResponse)
def rendered_content(
    post_id: PostId,
    request: Request,
    service: Service,
    user: CurrentUser,
    resolver: RequestResolver,
) -> dict[str, Any]:
    """Return the rendered, extracted content of a content item.

    Unknown items return empty content.
    """
    _authorize(service, user, post_id)
    content = service.rendered_content(post_id, cookies=dict(request.cookies), resolver=resolver)
    return {"post_id": post_id, "content": content}


@router.get("/editor-config", response_model=EditorConfigResponse)
def editor_config(
    post_id: PostId,
    request: Request,
    service: Service,
    user: CurrentUser,
) -> dict[str, Any]:
    """Return what the editor script needs to talk to this API."""
    _authorize(service, user, post_id)
    return {
        "rest_url": str(request.url_for("rendered_content")),
        "post_id": post_id,
        "mode": service.mode,
        "debug": service.settings.debug,
    }
