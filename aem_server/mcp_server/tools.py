"""MCP tools for AEM content operations.

Each tool is an ``OperationSpec``: an argument model, a pure builder from
validated arguments to a ``RequestDescriptor``, and a pure shaper from the
decoded response to the tool's payload. ``OPERATIONS`` is the registry the
dispatcher and the MCP server read from.
"""

import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any

from aem_server.mcp_server.auth import CSRF_TOKEN_PATH
from aem_server.mcp_server.client import AEMClient, APIResponse
from aem_server.mcp_server.errors import AEMServerError
from aem_server.models.api.requests import HttpMethod, RequestDescriptor
from aem_server.models.api.tools import (
    SEARCH_FILTER_KEYS,
    AssetPathArguments,
    CreateContentFragmentArguments,
    CreatePageArguments,
    DeletePageArguments,
    FolderPathArguments,
    FragmentPathArguments,
    ListContentFragmentsArguments,
    NoArguments,
    PagePathArguments,
    ParentPathArguments,
    ReplicatePageArguments,
    SearchArguments,
    ToolArguments,
    UpdateContentFragmentArguments,
    UpdatePageArguments,
)

logger = logging.getLogger(__name__)

CHARSET = ("_charset_", "utf-8")

WCM_COMMAND_PATH = "/bin/wcmcommand"
QUERY_BUILDER_PATH = "/bin/querybuilder.json"
REPLICATE_PATH = "/bin/replicate.json"
ASSETS_API_PREFIX = "/api/assets"
CURRENT_USER_PATH = "/libs/granite/security/currentuser.json"

# Sling selectors controlling how much of the node tree comes back
INFINITY_SUFFIX = ".infinity.json"
CHILDREN_SUFFIX = ".1.json"
NODE_SUFFIX = ".json"
RENDITIONS_SUFFIX = "/jcr:content/renditions.1.json"

DEFAULT_SEARCH_LIMIT = 20
DEFAULT_LIST_LIMIT = 50


@dataclass(frozen=True)
class OperationSpec:
    """A named tool: its argument schema and how it maps onto AEM."""

    name: str
    description: str
    arguments: type[ToolArguments]
    build_request: Callable[[Any], RequestDescriptor] | None = None
    shape_result: Callable[[Any, APIResponse], Any] | None = None
    runner: Callable[[AEMClient, Any], Awaitable[Any]] | None = None

    async def run(self, client: AEMClient, args: ToolArguments) -> Any:
        if self.runner is not None:
            return await self.runner(client, args)

        descriptor = self.build_request(args)
        payload = await client.execute(descriptor)
        if self.shape_result is not None:
            return self.shape_result(args, payload)
        return payload


def _form_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


# Pages


def build_get_page(args: PagePathArguments) -> RequestDescriptor:
    return RequestDescriptor(path=f"{args.page_path}{INFINITY_SUFFIX}")


def build_list_pages(args: ParentPathArguments) -> RequestDescriptor:
    return RequestDescriptor(path=f"{args.parent_path}{CHILDREN_SUFFIX}")


def build_create_page(args: CreatePageArguments) -> RequestDescriptor:
    return RequestDescriptor(
        method=HttpMethod.POST,
        path=WCM_COMMAND_PATH,
        form=[
            ("cmd", "createPage"),
            ("parentPath", args.parent_path),
            ("title", args.title),
            ("label", args.page_name),
            ("template", args.template),
            CHARSET,
        ],
    )


def build_update_page(args: UpdatePageArguments) -> RequestDescriptor:
    form = [CHARSET]
    form.extend(
        (key, _form_value(value))
        for key, value in args.properties.items()
        if value is not None
    )
    return RequestDescriptor(
        method=HttpMethod.POST, path=f"{args.page_path}/jcr:content", form=form
    )


def build_delete_page(args: DeletePageArguments) -> RequestDescriptor:
    return RequestDescriptor(
        method=HttpMethod.POST,
        path=WCM_COMMAND_PATH,
        form=[
            ("cmd", "deletePage"),
            ("path", args.page_path),
            ("force", _form_value(args.force)),
            CHARSET,
        ],
    )


def build_replicate_page(args: ReplicatePageArguments) -> RequestDescriptor:
    return RequestDescriptor(
        method=HttpMethod.POST,
        path=REPLICATE_PATH,
        form=[("cmd", args.action), ("path", args.page_path), CHARSET],
    )


def page_acknowledgement(args, payload: APIResponse) -> dict:
    return {"success": True, "path": args.page_path}


def replication_acknowledgement(args: ReplicatePageArguments, payload: APIResponse) -> dict:
    return {"success": True, "path": args.page_path, "action": args.action}


# Search


def build_search_query(
    params: Mapping[str, str | int | float | bool | None],
) -> list[tuple[str, str]]:
    """Build QueryBuilder parameters from recognized filters plus passthrough keys.

    Pagination always comes first, then the recognized filters that are set,
    then any other keys in the order supplied. A passthrough key that is
    already present replaces the earlier value in place.
    """
    limit = params.get("limit")
    offset = params.get("offset")
    query = [
        ("p.limit", _form_value(DEFAULT_SEARCH_LIMIT if limit is None else limit)),
        ("p.offset", _form_value(0 if offset is None else offset)),
    ]

    for key in SEARCH_FILTER_KEYS:
        value = params.get(key)
        if value not in (None, ""):
            query.append((key, _form_value(value)))

    recognized = {*SEARCH_FILTER_KEYS, "limit", "offset"}
    for key, value in params.items():
        if key in recognized or value is None:
            continue
        positions = [i for i, (existing, _) in enumerate(query) if existing == key]
        if positions:
            query[positions[0]] = (key, _form_value(value))
        else:
            query.append((key, _form_value(value)))

    return query


def build_search(args: SearchArguments) -> RequestDescriptor:
    return RequestDescriptor(path=QUERY_BUILDER_PATH, query=build_search_query(args.filters()))


# Assets


def build_get_asset(args: AssetPathArguments) -> RequestDescriptor:
    return RequestDescriptor(path=f"{args.asset_path}{NODE_SUFFIX}")


def build_list_assets(args: FolderPathArguments) -> RequestDescriptor:
    params = {"path": args.folder_path, "type": "dam:Asset", "limit": DEFAULT_LIST_LIMIT}
    return RequestDescriptor(path=QUERY_BUILDER_PATH, query=build_search_query(params))


def build_get_asset_renditions(args: AssetPathArguments) -> RequestDescriptor:
    return RequestDescriptor(path=f"{args.asset_path}{RENDITIONS_SUFFIX}")


# Content fragments


def build_get_content_fragment(args: FragmentPathArguments) -> RequestDescriptor:
    return RequestDescriptor(path=f"{ASSETS_API_PREFIX}{args.fragment_path}{NODE_SUFFIX}")


def build_list_content_fragments(args: ListContentFragmentsArguments) -> RequestDescriptor:
    params = {
        "path": args.folder_path,
        "type": "dam:Asset",
        "limit": DEFAULT_LIST_LIMIT,
        "property": "jcr:content/contentFragment",
        "property.value": "true",
    }
    if args.model_path:
        params["property.1_property"] = "jcr:content/data/cq:model"
        params["property.1_value"] = args.model_path
    return RequestDescriptor(path=QUERY_BUILDER_PATH, query=build_search_query(params))


def build_create_content_fragment(args: CreateContentFragmentArguments) -> RequestDescriptor:
    form = [("jcr:title", args.title), ("template", args.model_path)]
    if args.description:
        form.append(("jcr:description", args.description))
    form.append(CHARSET)
    return RequestDescriptor(
        method=HttpMethod.POST,
        path=f"{ASSETS_API_PREFIX}{args.parent_path}/{args.name}",
        form=form,
    )


def build_update_content_fragment(args: UpdateContentFragmentArguments) -> RequestDescriptor:
    return RequestDescriptor(
        method=HttpMethod.PUT,
        path=f"{ASSETS_API_PREFIX}{args.fragment_path}",
        json_body={"class": "asset", "properties": args.properties},
    )


# Diagnostics

CONNECTION_PROBES = (
    ("csrf_token", CSRF_TOKEN_PATH),
    ("current_user", CURRENT_USER_PATH),
    ("content_read", f"/content{CHILDREN_SUFFIX}"),
    ("dam_read", f"/content/dam{CHILDREN_SUFFIX}"),
)


def _probe_detail(name: str, payload: APIResponse) -> Any:
    if not isinstance(payload, dict):
        return payload
    if name == "csrf_token":
        return {"token_present": bool(payload.get("token"))}
    if name == "current_user":
        return {
            "user_id": payload.get("authorizableId"),
            "name": payload.get("name"),
            "groups": [
                group.get("authorizableId")
                for group in payload.get("memberOf", [])
                if isinstance(group, dict)
            ],
        }
    return {"children": sorted(k for k, v in payload.items() if isinstance(v, dict))}


async def check_connection(client: AEMClient, args: NoArguments) -> dict:
    """Probe authentication, identity and read access independently.

    Each probe records its own outcome; a failing probe never stops the
    remaining ones. Configuration errors are reported per probe as well.
    """
    probes = {}
    for name, path in CONNECTION_PROBES:
        try:
            payload = await client.get(
                path, query=[("props", "memberOf")] if name == "current_user" else None
            )
            probes[name] = {"ok": True, "path": path, "detail": _probe_detail(name, payload)}
        except AEMServerError as e:
            logger.info(f"Connection probe {name} failed: {e.message}")
            probes[name] = {
                "ok": False,
                "path": path,
                "status_code": e.status_code,
                "error": e.message,
            }

    return {
        "base_url": client.config.base_url,
        "auth_type": client.config.auth_type.value,
        "ok": all(probe["ok"] for probe in probes.values()),
        "probes": probes,
    }


OPERATIONS: dict[str, OperationSpec] = {
    spec.name: spec
    for spec in (
        OperationSpec(
            name="aem_check_connection",
            description=(
                "Diagnose the AEM connection: tests the CSRF token endpoint, identifies "
                "the current user and their group memberships, and checks read access "
                "to /content and /content/dam. Run this first if you are getting 403 errors."
            ),
            arguments=NoArguments,
            runner=check_connection,
        ),
        OperationSpec(
            name="aem_get_page",
            description="Get AEM page content and properties at the specified JCR path. Returns the full node tree.",
            arguments=PagePathArguments,
            build_request=build_get_page,
        ),
        OperationSpec(
            name="aem_list_pages",
            description="List direct child pages under an AEM path. Returns one level of children with their properties.",
            arguments=ParentPathArguments,
            build_request=build_list_pages,
        ),
        OperationSpec(
            name="aem_create_page",
            description="Create a new AEM page under the specified parent path using a page template.",
            arguments=CreatePageArguments,
            build_request=build_create_page,
        ),
        OperationSpec(
            name="aem_update_page",
            description="Update properties of an existing AEM page (e.g. title, description, tags). Targets the jcr:content node.",
            arguments=UpdatePageArguments,
            build_request=build_update_page,
            shape_result=page_acknowledgement,
        ),
        OperationSpec(
            name="aem_delete_page",
            description="Delete an AEM page at the specified path. Use force=true to delete pages with child pages.",
            arguments=DeletePageArguments,
            build_request=build_delete_page,
            shape_result=page_acknowledgement,
        ),
        OperationSpec(
            name="aem_replicate_page",
            description="Activate or deactivate (publish/unpublish) an AEM page to the publish instance.",
            arguments=ReplicatePageArguments,
            build_request=build_replicate_page,
            shape_result=replication_acknowledgement,
        ),
        OperationSpec(
            name="aem_search",
            description=(
                "Search AEM content using the QueryBuilder API. Supports full-text search, "
                "path filtering and type filtering. Additional QueryBuilder predicates "
                "(e.g. property, property.value) are passed through unchanged."
            ),
            arguments=SearchArguments,
            build_request=build_search,
        ),
        OperationSpec(
            name="aem_get_asset",
            description="Get metadata and properties of a DAM asset at the specified path.",
            arguments=AssetPathArguments,
            build_request=build_get_asset,
        ),
        OperationSpec(
            name="aem_list_assets",
            description="List all DAM assets inside a given folder path.",
            arguments=FolderPathArguments,
            build_request=build_list_assets,
        ),
        OperationSpec(
            name="aem_get_asset_renditions",
            description="Get all available renditions (sizes/formats) for a DAM asset.",
            arguments=AssetPathArguments,
            build_request=build_get_asset_renditions,
        ),
        OperationSpec(
            name="aem_get_content_fragment",
            description="Get the content and metadata of an AEM Content Fragment at the specified path.",
            arguments=FragmentPathArguments,
            build_request=build_get_content_fragment,
        ),
        OperationSpec(
            name="aem_list_content_fragments",
            description="List Content Fragments in a DAM folder, optionally filtered by Content Fragment Model.",
            arguments=ListContentFragmentsArguments,
            build_request=build_list_content_fragments,
        ),
        OperationSpec(
            name="aem_create_content_fragment",
            description="Create a new Content Fragment in AEM DAM using a specified Content Fragment Model.",
            arguments=CreateContentFragmentArguments,
            build_request=build_create_content_fragment,
        ),
        OperationSpec(
            name="aem_update_content_fragment",
            description="Replace the properties or field values of an existing AEM Content Fragment.",
            arguments=UpdateContentFragmentArguments,
            build_request=build_update_content_fragment,
        ),
    )
}
