# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for HAL response formatting utilities.
"""

import pytest
from services.hal import (
    HalLinkBuilder, PaginationLinkBuilder, AffordanceLinkBuilder,
    HalResponseBuilder, HalFormatter, create_hal_formatter
)
from models.responses import HalLink
from domain.procedures import procedure_to_dict
from models.enums import StepStatus, ProcedureStatus

from conftest import make_procedure

BASE_URL = "https://api.example.com"
PROCEDURE_ID = "65f1a2b3c4d5e6f708091a2b"


class TestHalLinkBuilder:
    """Test HAL link builder functionality."""

    def test_build_basic_link(self):
        """Test building a basic HAL link."""
        builder = HalLinkBuilder(BASE_URL)

        link = builder.build_link("/api/procedures/123")

        assert isinstance(link, HalLink)
        assert link.href == "https://api.example.com/api/procedures/123"
        assert link.method == "GET"
        assert link.type is None
        assert link.templated is None

    def test_trailing_slash_in_base_url(self):
        builder = HalLinkBuilder("https://api.example.com/")

        assert builder.build_link("api/procedures").href == "https://api.example.com/api/procedures"

    def test_build_link_with_options(self):
        builder = HalLinkBuilder(BASE_URL)

        link = builder.build_link(
            "/api/procedures/123/steps/{step_name}",
            method="PUT",
            content_type="application/json",
            title="Update step status",
            templated=True
        )

        assert link.method == "PUT"
        assert link.type == "application/json"
        assert link.templated is True

    def test_build_action_link(self):
        """Test building an action link."""
        builder = HalLinkBuilder(BASE_URL)

        link = builder.build_action_link("/api/procedures/123", "reject")

        assert link.href == "https://api.example.com/api/procedures/123/reject"
        assert link.method == "POST"
        assert link.type == "application/json"
        assert link.title == "Reject"


class TestPaginationLinkBuilder:
    """Test pagination link generation."""

    def test_first_page(self):
        builder = PaginationLinkBuilder(BASE_URL)

        links = builder.build_pagination_links("/api/procedures", 1, 3, 20)

        assert set(links) == {'self', 'next', 'last'}
        assert links['next'].href.endswith("/api/procedures?page=2&page_size=20")
        assert links['last'].href.endswith("page=3&page_size=20")

    def test_middle_page(self):
        builder = PaginationLinkBuilder(BASE_URL)

        links = builder.build_pagination_links("/api/procedures", 2, 3, 20)

        assert set(links) == {'self', 'first', 'prev', 'next', 'last'}
        assert "page=1" in links['prev'].href

    def test_last_page(self):
        builder = PaginationLinkBuilder(BASE_URL)

        links = builder.build_pagination_links("/api/procedures", 3, 3, 20)

        assert 'next' not in links
        assert 'last' not in links

    def test_query_params_preserved(self):
        """Test that filters survive page navigation and empty ones are dropped."""
        builder = PaginationLinkBuilder(BASE_URL)

        links = builder.build_pagination_links(
            "/api/procedures", 1, 2, 10, {'status': 'En cours', 'search': None}
        )

        assert "status=En+cours" in links['next'].href
        assert "search" not in links['next'].href


class TestAffordanceLinkBuilder:
    """Test state-dependent procedure links."""

    def test_running_procedure(self):
        builder = AffordanceLinkBuilder(BASE_URL)

        links = builder.build_procedure_affordances(PROCEDURE_ID, "En cours", True, False)

        assert set(links) == {'self', 'collection', 'cancel', 'update_step', 'reject', 'delete'}
        assert links['cancel'].method == "PUT"
        assert links['cancel'].href.endswith(f"/api/procedures/{PROCEDURE_ID}/cancel")
        assert links['update_step'].templated is True
        assert links['update_step'].href.endswith("/steps/{step_name}")
        assert links['delete'].method == "DELETE"

    def test_no_cancel_link_when_not_eligible(self):
        """Test that the cancel link follows cancellation eligibility."""
        builder = AffordanceLinkBuilder(BASE_URL)

        links = builder.build_procedure_affordances(PROCEDURE_ID, "En cours", False, False)

        assert 'cancel' not in links
        assert 'update_step' in links

    @pytest.mark.parametrize("status", ["Terminée", "Refusée", "Annulée"])
    def test_final_procedure(self, status):
        builder = AffordanceLinkBuilder(BASE_URL)

        links = builder.build_procedure_affordances(PROCEDURE_ID, status, False, False)

        assert set(links) == {'self', 'collection', 'delete'}

    def test_deleted_procedure(self):
        builder = AffordanceLinkBuilder(BASE_URL)

        links = builder.build_procedure_affordances(PROCEDURE_ID, "Annulée", False, True)

        assert set(links) == {'self', 'collection'}


class TestHalResponseBuilder:
    """Test HAL response assembly."""

    def test_collection_response(self):
        builder = HalResponseBuilder(BASE_URL)

        response = builder.build_collection_response(
            [{'id': '1'}, {'id': '2'}], 45, 1, 20, "/api/procedures", embedded_key="procedures"
        )

        assert response['total'] == 45
        assert response['total_pages'] == 3
        assert len(response['_embedded']['procedures']) == 2
        assert response['_links']['self']['href'].startswith(BASE_URL)

    def test_empty_collection(self):
        builder = HalResponseBuilder(BASE_URL)

        response = builder.build_collection_response([], 0, 1, 20, "/api/procedures")

        assert response['total_pages'] == 0
        assert response['_embedded'] == {'items': []}
        assert set(response['_links']) == {'self'}

    def test_links_drop_empty_fields(self):
        builder = HalResponseBuilder(BASE_URL)

        response = builder.build_resource_response({'id': '1'}, {'self': HalLink(href="x", method="GET")})

        assert response['_links']['self'] == {'href': "x", 'method': "GET"}

    def test_validation_error_response(self):
        builder = HalResponseBuilder(BASE_URL)
        errors = [{'field': 'reason', 'message': 'Field required', 'type': 'missing'}]

        response = builder.build_error_response(
            "validation-error", "Validation Error", 400, "Invalid input", "/api/procedures/1/reject", errors
        )

        assert response['type'] == "https://api.example.com/problems/validation-error"
        assert response['status'] == 400
        assert response['errors'] == errors
        assert 'help' in response['_links']
        assert 'schema' in response['_links']

    def test_not_found_error_links_collection(self):
        builder = HalResponseBuilder(BASE_URL)

        response = builder.build_error_response(
            "resource-not-found", "Resource Not Found", 404, "Procedure not found", "/api/procedures/1"
        )

        assert 'errors' not in response
        assert response['_links']['collection']['href'] == "https://api.example.com/api/procedures"


class TestHalFormatter:
    """Test high-level HAL formatting."""

    def test_format_procedure(self):
        formatter = create_hal_formatter(BASE_URL)
        data = procedure_to_dict(make_procedure(id=PROCEDURE_ID))

        response = formatter.format_procedure(data)

        assert isinstance(formatter, HalFormatter)
        assert response['id'] == PROCEDURE_ID
        assert response['_links']['self']['href'] == f"{BASE_URL}/api/procedures/{PROCEDURE_ID}"
        assert 'cancel' in response['_links']

    def test_format_completed_procedure(self):
        formatter = HalFormatter(BASE_URL)
        procedure = make_procedure(
            StepStatus.COMPLETED, StepStatus.COMPLETED, StepStatus.COMPLETED,
            status=ProcedureStatus.COMPLETED
        )

        response = formatter.format_procedure(procedure_to_dict(procedure))

        assert 'cancel' not in response['_links']
        assert 'reject' not in response['_links']

    def test_format_procedure_collection(self):
        formatter = HalFormatter(BASE_URL)
        procedures = [procedure_to_dict(make_procedure()) for _ in range(2)]

        response = formatter.format_procedure_collection(procedures, 2, 1, 20, {'destination': 'Canada'})

        assert len(response['_embedded']['procedures']) == 2
        assert all('_links' in item for item in response['_embedded']['procedures'])
        assert "destination=Canada" in response['_links']['self']['href']

    def test_format_overview(self):
        formatter = HalFormatter(BASE_URL)

        response = formatter.format_overview({'total': 0, 'by_status': {}, 'by_destination': {}})

        assert response['_links']['self']['href'].endswith("/api/procedures/overview")

    def test_format_conflict_error(self):
        formatter = HalFormatter(BASE_URL)

        response = formatter.format_conflict_error(
            "Procedure cannot be cancelled", "/api/procedures/1/cancel",
            [{'field': 'procedure', 'message': 'not eligible', 'type': 'conflict'}]
        )

        assert response['status'] == 409
        assert response['type'].endswith("/problems/resource-conflict")
        assert len(response['errors']) == 1
