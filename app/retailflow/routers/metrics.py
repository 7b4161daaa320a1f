from fastapi import APIRouter, Response

from app.retailflow.core.metrics import metrics

router = APIRouter(tags=["ops"])


@router.get("/retailflow/ops/metrics", include_in_schema=False)
def expose_metrics() -> Response:
    """Prometheus scrape target for request, checkout and inventory counters."""
    snapshot = metrics.render()
    return Response(
        content=snapshot.content,
        media_type=snapshot.content_type,
        headers={"Cache-Control": "no-store"},
    )
