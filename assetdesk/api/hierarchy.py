"""
Category and space API endpoints.

WHAT: CRUD plus a nested tree view for the two hierarchical record kinds.

HOW: One router factory, instantiated for categories and for spaces;
hierarchy rules live in HierarchyService.
"""

from typing import Callable, List, Type

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from assetdesk.core.deps import get_category_service, get_space_service
from assetdesk.schemas.hierarchy import (
    CategoryCreate,
    CategoryNode,
    CategoryResponse,
    CategoryUpdate,
    SpaceCreate,
    SpaceNode,
    SpaceResponse,
    SpaceUpdate,
)
from assetdesk.services.hierarchy_service import HierarchyService


def build_router(
    collection: str,
    get_service: Callable[..., HierarchyService],
    create_schema: Type[BaseModel],
    update_schema: Type[BaseModel],
    response_schema: Type[BaseModel],
    node_schema: Type[BaseModel],
) -> APIRouter:
    """Routes for one hierarchical collection under an organization."""
    router = APIRouter(prefix=f"/organizations/{{org_id}}/{collection}", tags=[collection])

    @router.get("", response_model=List[response_schema], summary=f"List {collection}")
    async def list_nodes(service: HierarchyService = Depends(get_service)) -> List[dict]:
        return await service.list()

    @router.get("/tree", response_model=List[node_schema], summary=f"{collection.capitalize()} tree")
    async def tree(service: HierarchyService = Depends(get_service)) -> List[dict]:
        return await service.tree()

    @router.post(
        "",
        response_model=response_schema,
        status_code=status.HTTP_201_CREATED,
        summary=f"Create {collection}",
    )
    async def create_node(
        data: create_schema,
        service: HierarchyService = Depends(get_service),
    ) -> dict:
        return await service.create(data.to_fields())

    @router.get("/{node_id}", response_model=response_schema)
    async def get_node(node_id: str, service: HierarchyService = Depends(get_service)) -> dict:
        return await service.get(node_id)

    @router.patch("/{node_id}", response_model=response_schema)
    async def update_node(
        node_id: str,
        data: update_schema,
        service: HierarchyService = Depends(get_service),
    ) -> dict:
        return await service.update(node_id, data.to_fields())

    @router.delete("/{node_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_node(node_id: str, service: HierarchyService = Depends(get_service)) -> None:
        await service.delete(node_id)

    return router


categories_router = build_router(
    "categories",
    get_category_service,
    CategoryCreate,
    CategoryUpdate,
    CategoryResponse,
    CategoryNode,
)

spaces_router = build_router(
    "spaces",
    get_space_service,
    SpaceCreate,
    SpaceUpdate,
    SpaceResponse,
    SpaceNode,
)
