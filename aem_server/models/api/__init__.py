"""Request, result and tool-argument models for the AEM REST surface."""

from aem_server.models.api.requests import *
from aem_server.models.api.tools import *

__all__ = [
    # Request/result models
    "HttpMethod", "RequestDescriptor", "ToolResult",

    # Tool argument models
    "ToolArguments", "NoArguments", "PagePathArguments", "ParentPathArguments",
    "CreatePageArguments", "UpdatePageArguments", "DeletePageArguments",
    "ReplicatePageArguments", "SearchArguments", "AssetPathArguments",
    "FolderPathArguments", "FragmentPathArguments",
    "ListContentFragmentsArguments", "CreateContentFragmentArguments",
    "UpdateContentFragmentArguments",
]
