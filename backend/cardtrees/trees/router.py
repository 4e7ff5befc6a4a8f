"""FastAPI routes for card trees, nodes, annotations, and post-bundled payloads."""

from fastapi import APIRouter, Depends, Header, Response, status

from cardtrees.errors import AuthenticationError
from cardtrees.models import CardTree, CardTreeAnnotation, CardTreeNode
from cardtrees.trees.schemas import (
    AnnotationKindsResponse,
    AttachTreePayloadRequest,
    CreateAnnotationRequest,
    CreateNodeRequest,
    CreateTreeRequest,
    UpdateNodeRequest,
)
from cardtrees.trees.service import CardTreeService

router = APIRouter(tags=["card-trees"])


def get_tree_service() -> CardTreeService:
    """Dependency placeholder, replaced at app startup."""
    raise RuntimeError("CardTreeService not initialized")


def get_acting_user(x_acting_user: str | None = Header(default=None)) -> str:
    """Verified username forwarded by the auth layer in front of this service."""
    if x_acting_user is None or not x_acting_user.strip():
        raise AuthenticationError("Authentication required")
    return x_acting_user.strip()


# -- Scoped tree collections --


@router.post("/boards/{board_id}/trees", status_code=status.HTTP_201_CREATED)
async def create_board_tree(
    board_id: int,
    request: CreateTreeRequest,
    user: str = Depends(get_acting_user),
    service: CardTreeService = Depends(get_tree_service),
) -> CardTree:
    return await service.create_tree("board", board_id, request, user)


@router.get("/boards/{board_id}/trees")
async def list_board_trees(
    board_id: int,
    include_nodes: bool = False,
    service: CardTreeService = Depends(get_tree_service),
) -> list[CardTree]:
    return await service.list_trees("board", board_id, include_nodes=include_nodes)


@router.post("/threads/{thread_id}/trees", status_code=status.HTTP_201_CREATED)
async def create_thread_tree(
    thread_id: int,
    request: CreateTreeRequest,
    user: str = Depends(get_acting_user),
    service: CardTreeService = Depends(get_tree_service),
) -> CardTree:
    return await service.create_tree("thread", thread_id, request, user)


@router.get("/threads/{thread_id}/trees")
async def list_thread_trees(
    thread_id: int,
    include_nodes: bool = False,
    service: CardTreeService = Depends(get_tree_service),
) -> list[CardTree]:
    return await service.list_trees("thread", thread_id, include_nodes=include_nodes)


@router.post("/posts/{post_id}/trees", status_code=status.HTTP_201_CREATED)
async def attach_post_trees(
    post_id: int,
    request: AttachTreePayloadRequest,
    user: str = Depends(get_acting_user),
    service: CardTreeService = Depends(get_tree_service),
) -> list[CardTree]:
    """Resolve the tree_payload bundled with a newly created post."""
    return await service.attach_post_payload(post_id, request.tree_payload, user)


@router.get("/posts/{post_id}/trees")
async def list_post_trees(
    post_id: int,
    service: CardTreeService = Depends(get_tree_service),
) -> list[CardTree]:
    return await service.list_trees("post", post_id, include_nodes=True)


# -- Single tree --


@router.get("/trees/{tree_id}")
async def get_tree(
    tree_id: int,
    service: CardTreeService = Depends(get_tree_service),
) -> CardTree:
    return await service.get_tree(tree_id)


@router.get("/trees/{tree_id}/annotation-kinds")
async def get_annotation_kinds(
    tree_id: int,
    service: CardTreeService = Depends(get_tree_service),
) -> AnnotationKindsResponse:
    return await service.get_annotation_kinds(tree_id)


@router.post("/trees/{tree_id}/nodes", status_code=status.HTTP_201_CREATED)
async def create_node(
    tree_id: int,
    request: CreateNodeRequest,
    user: str = Depends(get_acting_user),
    service: CardTreeService = Depends(get_tree_service),
) -> CardTreeNode:
    return await service.create_node(tree_id, request, user)


@router.patch(
    "/trees/{tree_id}/nodes/{node_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(get_acting_user)],
)
async def update_node(
    tree_id: int,
    node_id: int,
    request: UpdateNodeRequest,
    service: CardTreeService = Depends(get_tree_service),
) -> Response:
    await service.update_node(tree_id, node_id, request)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete(
    "/trees/{tree_id}/nodes/{node_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(get_acting_user)],
)
async def delete_node(
    tree_id: int,
    node_id: int,
    service: CardTreeService = Depends(get_tree_service),
) -> Response:
    await service.delete_node(tree_id, node_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/trees/{tree_id}/nodes/{node_id}/annotations",
    status_code=status.HTTP_201_CREATED,
)
async def create_annotation(
    tree_id: int,
    node_id: int,
    request: CreateAnnotationRequest,
    user: str = Depends(get_acting_user),
    service: CardTreeService = Depends(get_tree_service),
) -> CardTreeAnnotation:
    return await service.create_annotation(tree_id, node_id, request, user)


@router.delete(
    "/trees/{tree_id}/nodes/{node_id}/annotations/{annotation_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(get_acting_user)],
)
async def delete_annotation(
    tree_id: int,
    node_id: int,
    annotation_id: int,
    service: CardTreeService = Depends(get_tree_service),
) -> Response:
    await service.delete_annotation(tree_id, node_id, annotation_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
