# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Pytest configuration and fixtures.
"""

import os
import pytest
from datetime import datetime, timezone
from typing import List
from unittest.mock import MagicMock
from bson import ObjectId

# Set test environment before the application module is imported
os.environ['ENVIRONMENT'] = 'test'
os.environ['OTEL_ENABLED'] = 'false'
os.environ['MONGODB_DATABASE'] = 'procedures_test'

from models.entities import Procedure, Step
from models.enums import StepStatus, ProcedureStatus, STEP_ORDER

FIXED_NOW = datetime(2024, 3, 15, 10, 30, tzinfo=timezone.utc)


def make_steps(*statuses: StepStatus) -> List[Step]:
    """Steps in phase order with the given statuses."""
    return [
        Step(name=name, status=status, created_at=FIXED_NOW, updated_at=FIXED_NOW)
        for name, status in zip(STEP_ORDER, statuses)
    ]


def make_procedure(*statuses: StepStatus, **overrides) -> Procedure:
    """Procedure with the given step statuses (defaults to a fresh procedure)."""
    if not statuses:
        statuses = (StepStatus.IN_PROGRESS, StepStatus.PENDING, StepStatus.PENDING)

    data = {
        "id": str(ObjectId()),
        "first_name": "Awa",
        "last_name": "Diallo",
        "email": "awa.diallo@example.com",
        "phone": "+221770000000",
        "destination": "Canada",
        "field_of_study": "Informatique",
        "education_level": "Licence",
        "status": ProcedureStatus.IN_PROGRESS,
        "steps": make_steps(*statuses),
        "created_at": FIXED_NOW,
        "updated_at": FIXED_NOW,
    }
    data.update(overrides)
    return Procedure(**data)


@pytest.fixture
def fixed_now():
    return FIXED_NOW


@pytest.fixture
def new_procedure():
    """Procedure as created from an appointment."""
    return make_procedure()


@pytest.fixture
def procedure_document():
    """Stored procedure document with French field names."""
    return {
        "_id": ObjectId(),
        "rendezVousId": ObjectId(),
        "prenom": "Moussa",
        "nom": "Sarr",
        "email": "Moussa.Sarr@Example.com",
        "telephone": "+221771112233",
        "destination": "Autre",
        "destinationAutre": "Japon",
        "filiere": "Médecine",
        "niveauEtude": "Master",
        "statut": "En cours",
        "steps": [
            {"nom": "DEMANDE ADMISSION", "statut": "En cours", "dateCreation": FIXED_NOW, "dateMaj": FIXED_NOW},
            {"nom": "DEMANDE VISA", "statut": "En attente", "dateCreation": FIXED_NOW, "dateMaj": FIXED_NOW},
            {"nom": "PREPARATIF VOYAGE", "statut": "En attente", "dateCreation": FIXED_NOW, "dateMaj": FIXED_NOW},
        ],
        "isDeleted": False,
        "createdAt": datetime(2024, 3, 1, 9, 0),
        "updatedAt": datetime(2024, 3, 1, 9, 0),
        "schemaVersion": 1,
    }


@pytest.fixture
def appointment_data():
    """Completed appointment with a favorable opinion."""
    return {
        "_id": ObjectId(),
        "firstName": "Fatou",
        "lastName": "Ndiaye",
        "email": "fatou.ndiaye@example.com",
        "telephone": "+221781234567",
        "destination": "France",
        "filiere": "Autre",
        "filiereAutre": "Architecture navale",
        "niveauEtude": "Licence",
        "date": "2024-03-10",
        "time": "10:00",
        "status": "Terminé",
        "avisAdmin": "Favorable",
    }


@pytest.fixture
def mock_repository():
    """Procedure repository double for endpoint tests."""
    repository = MagicMock()
    repository.collection_name = "procedures"
    repository.find_by_id.return_value = None
    repository.find_all.return_value = []
    repository.save.side_effect = lambda procedure: procedure
    repository.health_check.return_value = {
        'status': 'healthy',
        'ping': True,
        'version': '7.0.0',
        'database': 'procedures_test'
    }
    return repository


@pytest.fixture
def client(mock_repository):
    """Test client backed by the mocked repository."""
    from app import create_app

    app = create_app(repository=mock_repository, config_overrides={
        'TESTING': True,
        'BASE_URL': 'http://testserver',
        'ENVIRONMENT': 'test'
    })

    with app.test_client() as client:
        yield client

