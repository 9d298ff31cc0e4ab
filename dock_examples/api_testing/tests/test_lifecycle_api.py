"""
================================================================================
Lifecycle API Test Suite
================================================================================

The smallest complete example: look up the acting user and organization,
then create, read, update and delete a patient.

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import allure
import pytest

from dock_examples.framework import DockDataFactory, HttpClient


@allure.epic("Dock Health API")
@allure.feature("Lifecycle")
class TestLifecycleAPI:

    @pytest.mark.P0
    @pytest.mark.smoke
    @allure.story("User")
    @allure.title("Get user by identifier")
    def test_get_user(self, http_client: HttpClient, user_id: str):
        response = http_client.get(f"/api/v1/user/{user_id}")

        user = http_client.expect(response, 200).json()
        assert user["id"] == user_id

    @pytest.mark.P0
    @pytest.mark.smoke
    @allure.story("Organization")
    @allure.title("Get current organization")
    def test_get_current_organization(self, http_client: HttpClient, org_id: str):
        response = http_client.get("/api/v1/organization/current")

        organization = http_client.expect(response, 200).json()
        assert organization["id"] == org_id

    @pytest.mark.P0
    @allure.story("Patient")
    @allure.title("Create, get, update and delete a patient")
    def test_patient_lifecycle(
        self,
        http_client: HttpClient,
        factory: DockDataFactory,
        cleanup_resources: list,
    ):
        """
        Steps:
            1. POST /patient
            2. GET /patient/{id}
            3. PATCH /patient/{id}
            4. DELETE /patient/{id}
        """
        payload = factory.patient(dob="2000-01-01")

        with allure.step("Create patient"):
            response = http_client.post("/api/v1/patient", json=payload)
            patient = http_client.expect(response, 200).json()

            for field in ("firstName", "lastName", "dob", "mrn"):
                assert patient[field] == payload[field]

            patient_id = patient["id"]
            resource = {
                "type": "patient",
                "id": patient_id,
                "endpoint": f"/api/v1/patient/{patient_id}",
            }
            cleanup_resources.append(resource)

        with allure.step("Get patient"):
            response = http_client.get(f"/api/v1/patient/{patient_id}")
            assert http_client.expect(response, 200).json()["id"] == patient_id

        with allure.step("Update patient"):
            update = factory.patient(dob="2001-01-01")
            response = http_client.patch(f"/api/v1/patient/{patient_id}", json=update)
            patient = http_client.expect(response, 200).json()

            for field in ("firstName", "lastName", "dob", "mrn"):
                assert patient[field] == update[field]

        with allure.step("Delete patient"):
            response = http_client.delete(f"/api/v1/patient/{patient_id}")
            http_client.expect(response, 200)
            cleanup_resources.remove(resource)
