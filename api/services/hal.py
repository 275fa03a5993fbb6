# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
HAL (Hypertext Application Language) response formatting utilities.
Procedure resources carry affordance links that depend on their state.
"""

from typing import Dict, List, Any, Optional
from urllib.parse import urlencode
import math

from models.responses import HalLink, ErrorResponse
from models.enums import FINAL_PROCEDURE_STATUSES

PROCEDURES_PATH = "/api/procedures"


class HalLinkBuilder:
    """Builder for HAL links with proper URL construction."""

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip('/')

    def build_link(
        self,
        path: str,
        method: str = "GET",
        content_type: Optional[str] = None,
        title: Optional[str] = None,
        templated: bool = False
    ) -> HalLink:
        """Build a HAL link with proper URL construction."""
        return HalLink(
            href=f"{self.base_url}/{path.lstrip('/')}",
            method=method,
            type=content_type,
            title=title,
            templated=templated or None
        )

    def build_self_link(self, resource_path: str) -> HalLink:
        return self.build_link(resource_path, title="Self")

    def build_collection_link(self, collection_path: str) -> HalLink:
        return self.build_link(collection_path, title="Collection")

    def build_action_link(
        self,
        resource_path: str,
        action: str,
        method: str = "POST",
        title: Optional[str] = None
    ) -> HalLink:
        """Build action link for a resource."""
        return self.build_link(
            f"{resource_path}/{action}",
            method=method,
            content_type="application/json",
            title=title or action.title()
        )


class PaginationLinkBuilder:
    """Builder for pagination links in HAL collections."""

    def __init__(self, base_url: str):
        self.link_builder = HalLinkBuilder(base_url)

    def _page_link(self, base_path: str, params: Dict[str, Any], page: int, page_size: int, title: str) -> HalLink:
        query = urlencode({**params, 'page': page, 'page_size': page_size})
        return self.link_builder.build_link(f"{base_path}?{query}", title=title)

    def build_pagination_links(
        self,
        base_path: str,
        current_page: int,
        total_pages: int,
        page_size: int,
        query_params: Optional[Dict[str, Any]] = None
    ) -> Dict[str, HalLink]:
        """Build pagination links for a collection."""
        params = {key: value for key, value in (query_params or {}).items() if value is not None}
        links = {'self': self._page_link(base_path, params, current_page, page_size, "Current page")}

        if current_page > 1:
            links['first'] = self._page_link(base_path, params, 1, page_size, "First page")
            links['prev'] = self._page_link(base_path, params, current_page - 1, page_size, "Previous page")

        if current_page < total_pages:
            links['next'] = self._page_link(base_path, params, current_page + 1, page_size, "Next page")
            links['last'] = self._page_link(base_path, params, total_pages, page_size, "Last page")

        return links


class AffordanceLinkBuilder:
    """Builder for conditional affordance links based on procedure state."""

    def __init__(self, base_url: str):
        self.link_builder = HalLinkBuilder(base_url)

    def build_procedure_affordances(
        self,
        procedure_id: str,
        status: str,
        can_cancel: bool,
        is_deleted: bool
    ) -> Dict[str, HalLink]:
        """
        Build conditional affordance links for a procedure.

        The cancel link is present only when the procedure is eligible for
        cancellation; step, reject and delete links follow the same state.
        """
        links = {}
        base_path = f"{PROCEDURES_PATH}/{procedure_id}"

        links['self'] = self.link_builder.build_self_link(base_path)
        links['collection'] = self.link_builder.build_collection_link(PROCEDURES_PATH)

        if can_cancel:
            links['cancel'] = self.link_builder.build_action_link(
                base_path, "cancel", method="PUT", title="Cancel procedure"
            )

        open_procedure = not is_deleted and status not in {s.value for s in FINAL_PROCEDURE_STATUSES}

        if open_procedure:
            links['update_step'] = self.link_builder.build_link(
                f"{base_path}/steps/{{step_name}}",
                method="PUT",
                content_type="application/json",
                title="Update step status",
                templated=True
            )
            links['reject'] = self.link_builder.build_action_link(
                base_path, "reject", title="Reject procedure"
            )

        if not is_deleted:
            links['delete'] = self.link_builder.build_link(
                base_path,
                method="DELETE",
                title="Delete procedure"
            )

        return links


class HalResponseBuilder:
    """Main HAL response builder."""

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip('/')
        self.link_builder = HalLinkBuilder(base_url)
        self.pagination_builder = PaginationLinkBuilder(base_url)
        self.affordance_builder = AffordanceLinkBuilder(base_url)

    @staticmethod
    def _dump_links(links: Dict[str, HalLink]) -> Dict[str, Dict[str, Any]]:
        return {rel: link.model_dump(exclude_none=True) for rel, link in links.items()}

    def build_resource_response(self, data: Dict[str, Any], links: Dict[str, HalLink]) -> Dict[str, Any]:
        response = dict(data)
        response['_links'] = self._dump_links(links)
        return response

    def build_collection_response(
        self,
        items: List[Dict[str, Any]],
        total: int,
        page: int,
        page_size: int,
        collection_path: str,
        embedded_key: str = "items",
        query_params: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Build a HAL collection response with pagination links."""
        total_pages = math.ceil(total / page_size) if page_size > 0 else 1

        pagination_links = self.pagination_builder.build_pagination_links(
            collection_path,
            page,
            total_pages,
            page_size,
            query_params
        )

        return {
            'total': total,
            'page': page,
            'page_size': page_size,
            'total_pages': total_pages,
            '_links': self._dump_links(pagination_links),
            '_embedded': {
                embedded_key: items
            }
        }

    def build_error_response(
        self,
        error_type: str,
        title: str,
        status: int,
        detail: str,
        instance: str,
        validation_errors: Optional[List[Dict[str, Any]]] = None
    ) -> Dict[str, Any]:
        """Build RFC 7807 compliant error response with HAL links."""
        error_response = ErrorResponse(
            type=f"{self.base_url}/problems/{error_type}",
            title=title,
            status=status,
            detail=detail,
            instance=instance,
            errors=validation_errors or None
        ).model_dump(exclude_none=True)

        links = {
            'help': self.link_builder.build_link(
                f"/docs/errors#{error_type}",
                title="Error documentation"
            )
        }

        if error_type == "validation-error":
            links['schema'] = self.link_builder.build_link(
                "/openapi/openapi.json",
                title="API schema"
            )
        elif error_type == "resource-not-found":
            links['collection'] = self.link_builder.build_collection_link(PROCEDURES_PATH)

        error_response['_links'] = self._dump_links(links)
        return error_response


class HalFormatter:
    """High-level HAL formatter with convenience methods."""

    def __init__(self, base_url: str):
        self.builder = HalResponseBuilder(base_url)

    def format_procedure(self, procedure: Dict[str, Any]) -> Dict[str, Any]:
        """Format a serialized procedure with HAL links."""
        links = self.builder.affordance_builder.build_procedure_affordances(
            procedure['id'],
            procedure.get('status', ''),
            bool(procedure.get('can_cancel')),
            bool(procedure.get('is_deleted'))
        )
        return self.builder.build_resource_response(procedure, links)

    def format_procedure_collection(
        self,
        procedures: List[Dict[str, Any]],
        total: int,
        page: int,
        page_size: int,
        filters: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Format a page of procedures with HAL links."""
        return self.builder.build_collection_response(
            [self.format_procedure(procedure) for procedure in procedures],
            total,
            page,
            page_size,
            PROCEDURES_PATH,
            embedded_key="procedures",
            query_params=filters
        )

    def format_overview(self, overview: Dict[str, Any]) -> Dict[str, Any]:
        links = {
            'self': self.builder.link_builder.build_self_link(f"{PROCEDURES_PATH}/overview"),
            'procedures': self.builder.link_builder.build_collection_link(PROCEDURES_PATH),
        }
        return self.builder.build_resource_response(overview, links)

    def format_validation_error(
        self,
        detail: str,
        instance: str,
        validation_errors: List[Dict[str, Any]]
    ) -> Dict[str, Any]:
        """Format a validation error response."""
        return self.builder.build_error_response(
            "validation-error",
            "Validation Error",
            400,
            detail,
            instance,
            validation_errors
        )

    def format_not_found_error(self, detail: str, instance: str) -> Dict[str, Any]:
        return self.builder.build_error_response(
            "resource-not-found",
            "Resource Not Found",
            404,
            detail,
            instance
        )

    def format_conflict_error(
        self,
        detail: str,
        instance: str,
        validation_errors: Optional[List[Dict[str, Any]]] = None
    ) -> Dict[str, Any]:
        """Format a conflict error response (state does not allow the action)."""
        return self.builder.build_error_response(
            "resource-conflict",
            "Resource Conflict",
            409,
            detail,
            instance,
            validation_errors
        )

    def format_service_unavailable_error(self, detail: str, instance: str) -> Dict[str, Any]:
        return self.builder.build_error_response(
            "service-unavailable",
            "Service Unavailable",
            503,
            detail,
            instance
        )

    def format_server_error(self, detail: str, instance: str) -> Dict[str, Any]:
        return self.builder.build_error_response(
            "internal-server-error",
            "Internal Server Error",
            500,
            detail,
            instance
        )


# Convenience function for creating HAL formatter
def create_hal_formatter(base_url: str) -> HalFormatter:
    """Create a HAL formatter instance."""
    return HalFormatter(base_url)
