from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from items_service.api.deps import get_request_context, get_runtime, get_store, record_route
from items_service.errors import NotFound, StoreUnavailable, ValidationError
from items_service.models.schemas import DeleteItemResponse, Item, ItemPayload
from items_service.observability.context import RequestContext
from items_service.runtime import ServiceRuntime
from items_service.services.item_store import ItemStore

router = APIRouter(prefix="/items", tags=["items"], dependencies=[Depends(record_route)])


def _store_error(ctx: RequestContext, runtime: ServiceRuntime, exc: Exception, **fields: object) -> HTTPException:
    """Log a store failure once through the request logger and map it to a response."""

    if isinstance(exc, ValidationError):
        ctx.logger.warning("item.invalid", field=exc.field, error=exc.message, **fields)
        return HTTPException(status_code=400, detail=exc.message)
    if isinstance(exc, NotFound):
        fields.setdefault("item_id", exc.item_id)
        ctx.logger.warning("item.not_found", **fields)
        return HTTPException(status_code=404, detail="Item not found")

    ctx.logger.error("item.store_unavailable", error=str(exc), **fields)
    detail = str(exc) if runtime.settings.debug else "Internal server error"
    return HTTPException(status_code=500, detail=detail)


@router.get("", response_model=list[Item])
def list_items(
    ctx: RequestContext = Depends(get_request_context),
    store: ItemStore = Depends(get_store),
    runtime: ServiceRuntime = Depends(get_runtime),
) -> list[Item]:
    try:
        items = store.list()
    except StoreUnavailable as exc:
        raise _store_error(ctx, runtime, exc, action="list") from exc
    ctx.logger.info("item.listed", count=len(items))
    return items


@router.post("", response_model=Item, status_code=201)
def create_item(
    payload: ItemPayload,
    ctx: RequestContext = Depends(get_request_context),
    store: ItemStore = Depends(get_store),
    runtime: ServiceRuntime = Depends(get_runtime),
) -> Item:
    try:
        item = store.create(name=payload.name, description=payload.description)
    except (ValidationError, StoreUnavailable) as exc:
        raise _store_error(ctx, runtime, exc, action="create") from exc
    ctx.logger.info("item.created", item_id=item.id)
    return item


@router.get("/{item_id}", response_model=Item)
def get_item(
    item_id: str,
    ctx: RequestContext = Depends(get_request_context),
    store: ItemStore = Depends(get_store),
    runtime: ServiceRuntime = Depends(get_runtime),
) -> Item:
    try:
        return store.get(item_id)
    except (NotFound, StoreUnavailable) as exc:
        raise _store_error(ctx, runtime, exc, action="get", item_id=item_id) from exc


@router.put("/{item_id}", response_model=Item)
def update_item(
    item_id: str,
    payload: ItemPayload,
    ctx: RequestContext = Depends(get_request_context),
    store: ItemStore = Depends(get_store),
    runtime: ServiceRuntime = Depends(get_runtime),
) -> Item:
    try:
        item = store.update(item_id, name=payload.name, description=payload.description)
    except (ValidationError, NotFound, StoreUnavailable) as exc:
        raise _store_error(ctx, runtime, exc, action="update", item_id=item_id) from exc
    ctx.logger.info("item.updated", item_id=item_id)
    return item


@router.delete("/{item_id}", response_model=DeleteItemResponse)
def delete_item(
    item_id: str,
    ctx: RequestContext = Depends(get_request_context),
    store: ItemStore = Depends(get_store),
    runtime: ServiceRuntime = Depends(get_runtime),
) -> DeleteItemResponse:
    try:
        deleted = store.delete(item_id)
    except (NotFound, StoreUnavailable) as exc:
        raise _store_error(ctx, runtime, exc, action="delete", item_id=item_id) from exc
    ctx.logger.info("item.deleted", item_id=item_id)
    return DeleteItemResponse(success=True, deleted_item=deleted)
