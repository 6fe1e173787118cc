"""Public template asset endpoint.

Serves the stylesheets, scripts and images that file-based redirect
templates reference, from either the database or the object store.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from linkgate.api.dependencies import get_content_store
from linkgate.core.config import settings
from linkgate.db.session import get_db
from linkgate.storage.content_store import ContentStore

router = APIRouter(tags=["assets"])


@router.get("/assets/{prefix}/{filename:path}", response_class=Response)
async def get_template_asset(
    prefix: str,
    filename: str,
    db: AsyncSession = Depends(get_db),
    content_store: ContentStore = Depends(get_content_store),
):
    """Return a public template asset, or 404 when it is missing or private."""
    content = await content_store.get_asset(db, prefix, filename, public_only=True)
    if content is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Asset not found")

    return Response(
        content=content.data,
        media_type=content.content_type,
        headers={"Cache-Control": f"public, max-age={settings.ASSET_CACHE_MAX_AGE}"},
    )
