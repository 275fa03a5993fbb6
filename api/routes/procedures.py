# SPDX-License-Identifier: Apache-2.0

"""
Procedure tracking endpoints.

This module implements listing, detail view, statistics and the state
changing operations on procedures: step updates, cancellation, rejection
and soft deletion. Eligibility is always re-checked here before a write,
whatever the client was shown.
"""

from flask import request, jsonify, current_app
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
import logging
from typing import Dict, Any

from domain import procedures as procedure_domain
from domain import workflow as workflow_domain
from domain.progress import can_cancel_procedure
from models.entities import Procedure
from models.enums import StepName
from models.requests import (
    CancelProcedureRequest, DeleteProcedureRequest, RejectProcedureRequest,
    UpdateStepRequest, ProcedureListParams, ProcedurePath, StepPath
)
from middleware.error_handler import NotFoundException, ConflictException, ValidationException

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

procedures_tag = Tag(name="Procedures", description="Study-abroad procedure tracking")
procedures_bp = APIBlueprint(
    'procedures',
    __name__,
    url_prefix='/api/procedures',
    abp_tags=[procedures_tag]
)


def _load_procedure(procedure_id: str) -> Procedure:
    procedure = current_app.procedure_repository.find_by_id(procedure_id)
    if procedure is None:
        raise NotFoundException(f"Procedure not found: {procedure_id}")
    return procedure


def _resolve_step_name(raw: str) -> StepName:
    """Accept either the stored step value or the enum name."""
    try:
        return StepName(raw)
    except ValueError:
        pass

    key = raw.strip().upper().replace('-', '_').replace(' ', '_')
    try:
        return StepName[key]
    except KeyError:
        raise NotFoundException(f"Unknown step: {raw}")


def _json_body() -> Dict[str, Any]:
    return request.get_json(silent=True) or {}


def _procedure_response(procedure: Procedure) -> Dict[str, Any]:
    return current_app.hal_formatter.format_procedure(procedure_domain.procedure_to_dict(procedure))


def _apply_workflow(result: workflow_domain.WorkflowResult, span, operation: str, procedure_id: str):
    """Persist a successful workflow result or raise a conflict."""
    if not result.success:
        span.set_status(Status(StatusCode.ERROR, result.error_message))
        logger.warning(
            f"Procedure {operation} rejected",
            extra={
                "procedure_id": procedure_domain.mask_id(procedure_id),
                "error": result.error_message,
                "validation_errors": result.validation_errors
            }
        )
        raise ConflictException(result.error_message, result.validation_errors)

    with tracer.start_as_current_span("db.procedure.save") as db_span:
        db_span.set_attributes({
            "db.collection": current_app.procedure_repository.collection_name,
            "db.operation": "replace"
        })
        current_app.procedure_repository.save(result.procedure)

    logger.info(
        f"Procedure {operation} succeeded",
        extra={
            "procedure_id": procedure_domain.mask_id(procedure_id),
            "status": result.procedure.status.value
        }
    )
    span.set_status(Status(StatusCode.OK))
    return jsonify(_procedure_response(result.procedure)), 200


@procedures_bp.get('')
def list_procedures():
    """
    List procedures.

    Supports free-text search, status, destination, email and creation date
    filters, sorting and pagination.
    """
    with tracer.start_as_current_span("procedure.list") as span:
        params = ProcedureListParams.model_validate(request.args.to_dict())

        filters = procedure_domain.ProcedureFilters(
            search_term=params.search,
            status=params.status,
            destination=params.destination,
            date_from=params.date_from,
            date_to=params.date_to,
            email=params.email,
            include_deleted=params.include_deleted
        )

        result = current_app.procedure_repository.paginate(
            filters,
            params.sort_by,
            params.sort_order,
            params.page,
            params.page_size
        )

        span.set_attributes({
            "procedures.total": result.total,
            "procedures.page": params.page,
            "procedures.page_size": params.page_size
        })

        items = [procedure_domain.procedure_to_dict(procedure) for procedure in result.items]
        query_params = {
            "search": params.search,
            "status": params.status.value if params.status else None,
            "destination": params.destination,
            "email": params.email,
            "date_from": params.date_from.isoformat() if params.date_from else None,
            "date_to": params.date_to.isoformat() if params.date_to else None,
            "sort_by": params.sort_by.value,
            "sort_order": params.sort_order.value
        }

        response = current_app.hal_formatter.format_procedure_collection(
            items,
            result.total,
            params.page,
            params.page_size,
            query_params
        )
        return jsonify(response), 200


@procedures_bp.get('/overview')
def get_procedures_overview():
    """Procedure counts by aggregate status and destination."""
    with tracer.start_as_current_span("procedure.overview"):
        procedures = current_app.procedure_repository.find_all(
            procedure_domain.ProcedureFilters(include_deleted=True)
        )
        overview = procedure_domain.summarize_procedures(procedures)
        response = current_app.hal_formatter.format_overview(procedure_domain.overview_to_dict(overview))
        return jsonify(response), 200


@procedures_bp.get('/<procedure_id>')
def get_procedure(path: ProcedurePath):
    """Get a procedure with its steps, derived progress and available actions."""
    with tracer.start_as_current_span("procedure.detail") as span:
        span.set_attribute("procedure.id", procedure_domain.mask_id(path.procedure_id))
        procedure = _load_procedure(path.procedure_id)
        return jsonify(_procedure_response(procedure)), 200


@procedures_bp.put('/<procedure_id>/cancel')
def cancel_procedure(path: ProcedurePath):
    """
    Cancel a procedure.

    Only offered and accepted while the procedure is in progress and at least
    one step is not completed.
    """
    with tracer.start_as_current_span("procedure.cancel") as span:
        cancel_request = CancelProcedureRequest.model_validate(_json_body())
        procedure = _load_procedure(path.procedure_id)

        span.set_attribute("procedure.can_cancel", can_cancel_procedure(procedure))
        result = workflow_domain.cancel_procedure(procedure, cancel_request.reason)
        return _apply_workflow(result, span, "cancellation", path.procedure_id)


@procedures_bp.put('/<procedure_id>/steps/<step_name>')
def update_procedure_step(path: StepPath):
    """Change the status of one step, cascading to later steps when it blocks them."""
    with tracer.start_as_current_span("procedure.step.update") as span:
        step_name = _resolve_step_name(path.step_name)
        update_request = UpdateStepRequest.model_validate(_json_body())
        procedure = _load_procedure(path.procedure_id)

        span.set_attributes({
            "procedure.step": step_name.value,
            "procedure.step.new_status": update_request.status.value
        })

        result = workflow_domain.update_step(
            procedure,
            step_name,
            update_request.status,
            update_request.reason
        )
        return _apply_workflow(result, span, "step update", path.procedure_id)


@procedures_bp.post('/<procedure_id>/reject')
def reject_procedure(path: ProcedurePath):
    """Reject a whole procedure; a reason of 5 to 500 characters is required."""
    with tracer.start_as_current_span("procedure.reject") as span:
        body = _json_body()
        if not body:
            raise ValidationException("Missing request body", [{'field': 'reason', 'message': 'Field required'}])

        reject_request = RejectProcedureRequest.model_validate(body)
        procedure = _load_procedure(path.procedure_id)

        result = workflow_domain.reject_procedure(procedure, reject_request.reason)
        return _apply_workflow(result, span, "rejection", path.procedure_id)


@procedures_bp.delete('/<procedure_id>')
def delete_procedure(path: ProcedurePath):
    """Soft delete a procedure, cancelling it first when still in progress."""
    with tracer.start_as_current_span("procedure.delete") as span:
        delete_request = DeleteProcedureRequest.model_validate(_json_body())
        procedure = _load_procedure(path.procedure_id)

        result = workflow_domain.soft_delete_procedure(procedure, delete_request.reason)
        return _apply_workflow(result, span, "deletion", path.procedure_id)
