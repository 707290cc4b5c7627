"""Single-entity read endpoints.

Every lookup has the same shape: validate the path parameters, run one
``find_one`` through the injected store, return the row or a 404. The
endpoints are declared as data (``LookupResource``) and registered onto a
router by ``register_lookup``.
"""

from dataclasses import dataclass
from typing import Annotated, Any

from fastapi import APIRouter, Depends

from killboard.core.exceptions import NotFoundError
from killboard.core.types import Row
from killboard.infrastructure.database.dependencies import StoreDep
from killboard.validation import ENTITY_ID, Schema, validated


@dataclass(frozen=True, slots=True)
class LookupResource:
    """One lookup endpoint.

    Attributes:
        name: Resource name used in the 404 message, e.g. ``"Region"``.
        path: Route path with an ``{id}`` placeholder.
        query: SQL with named placeholders matching the schema fields.
        description: OpenAPI description.
        tag: OpenAPI tag.
    """

    name: str
    path: str
    query: str
    description: str
    tag: str


def _select_by(table: str, key: str) -> str:
    return f"SELECT * FROM {table} WHERE {key} = :id"


RESOURCES: tuple[LookupResource, ...] = (
    LookupResource(
        name="Character",
        path="/api/characters/{id}",
        query=_select_by("characters", '"characterId"'),
        description="Returns a character by its ID",
        tag="Characters",
    ),
    LookupResource(
        name="Corporation",
        path="/api/corporations/{id}",
        query=_select_by("corporations", '"corporationId"'),
        description="Returns a corporation by its ID",
        tag="Corporations",
    ),
    LookupResource(
        name="Alliance",
        path="/api/alliances/{id}",
        query=_select_by("alliances", '"allianceId"'),
        description="Returns an alliance by its ID",
        tag="Alliances",
    ),
    LookupResource(
        name="Constellation",
        path="/api/constellations/{id}",
        query=_select_by("constellations", '"constellationId"'),
        description="Returns a constellation by its ID",
        tag="Universe",
    ),
    LookupResource(
        name="Region",
        path="/api/regions/{id}",
        query=_select_by("regions", '"regionId"'),
        description="Returns a region by its ID",
        tag="Universe",
    ),
    LookupResource(
        name="Solar system",
        path="/api/solarsystems/{id}",
        query=_select_by("solarsystems", '"solarSystemId"'),
        description="Returns a solar system by its ID",
        tag="Universe",
    ),
    LookupResource(
        name="Item",
        path="/api/items/{id}",
        query=_select_by("types", '"typeId"'),
        description="Returns an item type by its ID",
        tag="Items",
    ),
    LookupResource(
        name="Type",
        path="/api/sde/types/{id}",
        query=_select_by("types", '"typeId"'),
        description="Returns a static data type by its ID",
        tag="SDE",
    ),
    LookupResource(
        name="Group",
        path="/api/sde/groups/{id}",
        query=_select_by("groups", '"groupId"'),
        description="Returns a static data group by its ID",
        tag="SDE",
    ),
    LookupResource(
        name="Bloodline",
        path="/api/sde/bloodlines/{id}",
        query=_select_by("bloodlines", '"bloodlineId"'),
        description="Returns a static data bloodline by its ID",
        tag="SDE",
    ),
    LookupResource(
        name="Killmail",
        path="/killmail/{id}/esi",
        query=_select_by("killmails_esi", "killmail_id"),
        description="Returns the ESI representation of a killmail",
        tag="Killmails",
    ),
)


def register_lookup(
    router: APIRouter, resource: LookupResource, schema: Schema = ENTITY_ID
) -> None:
    """Add a GET endpoint for ``resource`` to ``router``.

    Path parameters are validated before the store is requested, so invalid
    input never opens a database session.

    Args:
        router: Router receiving the endpoint.
        resource: The resource to serve.
        schema: Schema for the path parameters.
    """

    async def lookup(
        params: Annotated[Any, Depends(validated(schema, "path"))],
        store: StoreDep,
    ) -> Row:
        row = await store.find_one(resource.query, params.model_dump())
        if row is None:
            raise NotFoundError(resource.name, context={"path": resource.path})
        return row

    router.add_api_route(
        resource.path,
        lookup,
        methods=["GET"],
        response_model=None,
        name=f"get_{resource.name.lower().replace(' ', '_')}",
        summary=f"Get {resource.name.lower()}",
        description=resource.description,
        tags=[resource.tag],
        responses={400: {"description": "Invalid ID"}, 404: {"description": "Not found"}},
    )


router = APIRouter()

for _resource in RESOURCES:
    register_lookup(router, _resource)
