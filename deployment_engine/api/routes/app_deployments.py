from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response

from deployment_engine.api.container import get_orchestrator, get_store
from deployment_engine.api.schemas.app_deployment import (
    AppDeploymentCreateRequest,
    AppDeploymentResponse,
    AppDeploymentSpecModel,
    ReconcileResponse,
)
from deployment_engine.core.documents import spec_from_doc, spec_to_doc
from deployment_engine.core.errors import (
    ResourceAlreadyExists,
    ResourceConflict,
    ResourceNotFound,
    StoreError,
)
from deployment_engine.core.resources import NamespacedKey, Resource, ResourceKind

router = APIRouter(prefix="/app-deployments", tags=["app-deployments"])


def _to_response(resource: Resource) -> AppDeploymentResponse:
    return AppDeploymentResponse(
        namespace=resource.namespace,
        name=resource.name,
        uid=resource.uid,
        resource_version=resource.resource_version,
        generation=resource.generation,
        spec=resource.spec,
        status=resource.status,
    )


def _normalized_spec(spec: AppDeploymentSpecModel) -> dict:
    return spec_to_doc(spec_from_doc(spec.to_document()))


@router.post("/", response_model=AppDeploymentResponse, status_code=201)
def create_app_deployment(
    request: AppDeploymentCreateRequest,
    store=Depends(get_store),
):
    resource = Resource(
        kind=ResourceKind.APP_DEPLOYMENT,
        name=request.name,
        namespace=request.namespace,
        spec=_normalized_spec(request.spec),
    )

    try:
        created = store.create(resource)
    except ResourceAlreadyExists as e:
        raise HTTPException(status_code=409, detail=str(e))
    except StoreError as e:
        raise HTTPException(status_code=503, detail=str(e))

    return _to_response(created)


@router.get("/", response_model=List[AppDeploymentResponse])
def list_app_deployments(
    namespace: Optional[str] = None,
    store=Depends(get_store),
):
    try:
        resources = store.list(ResourceKind.APP_DEPLOYMENT, namespace=namespace)
    except StoreError as e:
        raise HTTPException(status_code=503, detail=str(e))

    return [_to_response(r) for r in resources]


@router.get("/{namespace}/{name}", response_model=AppDeploymentResponse)
def get_app_deployment(
    namespace: str,
    name: str,
    store=Depends(get_store),
):
    resource = store.get(ResourceKind.APP_DEPLOYMENT, namespace, name)

    if not resource:
        raise HTTPException(status_code=404, detail="App Deployment not found")

    return _to_response(resource)


@router.put("/{namespace}/{name}", response_model=AppDeploymentResponse)
def update_app_deployment(
    namespace: str,
    name: str,
    spec: AppDeploymentSpecModel,
    store=Depends(get_store),
):
    resource = store.get(ResourceKind.APP_DEPLOYMENT, namespace, name)
    if not resource:
        raise HTTPException(status_code=404, detail="App Deployment not found")

    resource.spec = _normalized_spec(spec)

    try:
        updated = store.update(resource)
    except ResourceConflict as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ResourceNotFound:
        raise HTTPException(status_code=404, detail="App Deployment not found")

    return _to_response(updated)


@router.delete("/{namespace}/{name}", status_code=204)
def delete_app_deployment(
    namespace: str,
    name: str,
    store=Depends(get_store),
):
    try:
        store.delete(ResourceKind.APP_DEPLOYMENT, namespace, name)
    except ResourceNotFound:
        raise HTTPException(status_code=404, detail="App Deployment not found")

    return Response(status_code=204)


@router.post("/{namespace}/{name}/reconcile", response_model=ReconcileResponse)
def reconcile_app_deployment(
    namespace: str,
    name: str,
    orchestrator=Depends(get_orchestrator),
):
    result = orchestrator.reconcile(NamespacedKey(namespace, name))

    return ReconcileResponse(
        requeue_after=result.requeue_after,
        error=str(result.error) if result.error else None,
    )
