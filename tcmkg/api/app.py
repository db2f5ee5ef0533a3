"""tcmkg — FastAPI application factory.

Usage:
    uvicorn tcmkg.api.app:create_app --factory --reload --port 8000

Or for production:
    uvicorn tcmkg.api.app:app --host 0.0.0.0 --port 8000 --workers 4
"""

from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from tcmkg import __version__
from tcmkg.config.settings import settings
from tcmkg.graph.centrality import CentralityRankings
from tcmkg.graph.distance import DistanceType
from tcmkg.graph.engine import AlgorithmType, AnalysisEngine, parse_params
from tcmkg.graph.hierarchical import LinkageMethod
from tcmkg.graph.metrics import annotate_metrics, extract_backbone, graph_metadata
from tcmkg.graph.models import RawGraph

logger = logging.getLogger("tcmkg.api")


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class EntityModel(_CamelModel):
    type: str
    name: str


class RelationModel(_CamelModel):
    source: str
    relation: str = ""
    target: str


class GraphPayload(_CamelModel):
    entities: list[EntityModel] = []
    relations: list[RelationModel] = []

    def to_raw(self) -> RawGraph:
        return RawGraph.from_dict(self.model_dump())


class CooccurrenceRequest(GraphPayload):
    container_type: str
    item_type: str
    metrics: bool = False
    backbone: float = 0.0


class AnalysisRequest(GraphPayload):
    params: dict[str, Any] = {}
    # Hierarchical / centrality run on the co-occurrence graph when both are set.
    container_type: str | None = None
    item_type: str | None = None
    top: int | None = Field(default=None, ge=1)


# -- Parameter validation models ---------------------------------------------


class HierarchicalParamsModel(_CamelModel):
    distance_type: DistanceType = DistanceType(settings.DEFAULT_DISTANCE)
    method: LinkageMethod = LinkageMethod(settings.DEFAULT_LINKAGE)
    k: int | None = Field(default=None, ge=1)


class KMeansParamsModel(_CamelModel):
    target_type: str
    k: int = Field(default=3, ge=1)


class CommunityParamsModel(_CamelModel):
    front_type: str
    back_type: str


class AssociationParamsModel(_CamelModel):
    front_type: str
    back_type: str
    min_support: float = Field(default=0.1, ge=0.0, le=1.0)
    min_confidence: float = Field(default=0.5, ge=0.0, le=1.0)


class CentralityParamsModel(_CamelModel):
    pass


PARAMS_MODELS: dict[AlgorithmType, type[BaseModel]] = {
    AlgorithmType.HIERARCHICAL: HierarchicalParamsModel,
    AlgorithmType.KMEANS: KMeansParamsModel,
    AlgorithmType.COMMUNITY: CommunityParamsModel,
    AlgorithmType.ASSOCIATION: AssociationParamsModel,
    AlgorithmType.CENTRALITY: CentralityParamsModel,
}


def create_app(include_docs: bool = True) -> FastAPI:
    """Build and return the FastAPI application."""
    app = FastAPI(
        title="tcmkg",
        description="Knowledge graph analytics: clustering, communities, rules, centrality",
        version=__version__,
        docs_url="/docs" if include_docs else None,
        redoc_url="/redoc" if include_docs else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    engine = AnalysisEngine(settings)

    @app.get("/api/health")
    def health():
        return {"status": "ok", "version": __version__}

    @app.get("/api/algorithms")
    def list_algorithms():
        """List the analysis algorithm identifiers."""
        return {"algorithms": [a.value for a in AlgorithmType]}

    @app.post("/api/cooccurrence")
    def cooccurrence(req: CooccurrenceRequest):
        """Build the item co-occurrence graph for one container/item pairing."""
        graph = engine.cooccurrence(req.to_raw(), req.container_type, req.item_type)
        graph = extract_backbone(graph, req.backbone)
        if req.metrics:
            annotate_metrics(graph)
            graph.metadata.update(graph_metadata(graph))
        return graph.to_dict()

    @app.post("/api/analysis/{algorithm}")
    def run_analysis(algorithm: str, req: AnalysisRequest):
        """Run one algorithm on the posted entities and relations."""
        try:
            algo = AlgorithmType(algorithm)
        except ValueError:
            raise HTTPException(status_code=404, detail=f"Unknown algorithm: {algorithm}")

        try:
            validated = PARAMS_MODELS[algo].model_validate(req.params)
        except ValidationError as exc:
            raise HTTPException(status_code=422, detail=json.loads(exc.json()))

        params = parse_params(algo, validated.model_dump())
        result = engine.run(
            algo, req.to_raw(), params=params,
            container_type=req.container_type, item_type=req.item_type,
        )

        if isinstance(result, CentralityRankings) and req.top:
            result = result.top(req.top)

        return result.to_dict()

    logger.info("tcmkg API v%s configured", __version__)
    return app


# Default app instance for `uvicorn tcmkg.api.app:app`
app = create_app()
