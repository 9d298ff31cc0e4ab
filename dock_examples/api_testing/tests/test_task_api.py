"""
================================================================================
Task Lifecycle Test Suite
================================================================================

Task list -> task group -> custom field -> task carrying a value for that
field, then everything deleted in reverse order.

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import allure
import pytest

from dock_examples.framework import DockDataFactory, HttpClient
from dock_examples.framework.data_factory import TASK_FIELD_VALUES


@allure.epic("Dock Health API")
@allure.feature("Tasks")
class TestTaskAPI:

    @pytest.mark.P0
    @allure.story("Task Lifecycle")
    @allure.title("Create list, group, field and task, then delete them")
    def test_task_lifecycle(
        self,
        http_client: HttpClient,
        factory: DockDataFactory,
        cleanup_resources: list,
    ):
        with allure.step("Create task list"):
            payload = factory.task_list()
            response = http_client.post("/api/v1/list", json=payload)
            task_list = http_client.expect(response, 200).json()
            assert task_list["listName"] == payload["listName"]
            assert task_list["listDescription"] == payload["listDescription"]

            list_resource = {
                "type": "task list",
                "id": task_list["id"],
                "endpoint": f"/api/v1/list/{task_list['id']}",
            }
            cleanup_resources.append(list_resource)

        with allure.step("Create task group"):
            payload = factory.task_group(task_list["id"])
            response = http_client.post("/api/v1/task/group", json=payload)
            task_group = http_client.expect(response, 200).json()
            assert task_group["groupName"] == payload["groupName"]

            group_resource = {
                "type": "task group",
                "id": task_group["id"],
                "endpoint": f"/api/v1/task/group/{task_group['id']}",
            }
            cleanup_resources.append(group_resource)

        with allure.step("Create TEXT custom field"):
            payload = factory.custom_field("TEXT", "text field")
            response = http_client.post("/api/v1/configuration/field", json=payload)
            field = http_client.expect(response, 200).json()
            assert field["targetType"] == "TASK"
            assert field["fieldCategoryType"] == "TASK_CORE"
            assert field["fieldType"] == "TEXT"
            assert field["name"] == "text field"

            field_resource = {
                "type": "custom field",
                "id": field["id"],
                "endpoint": f"/api/v1/configuration/field/{field['id']}",
            }
            cleanup_resources.append(field_resource)

        with allure.step("Create task with custom field value"):
            value = TASK_FIELD_VALUES["TEXT"]
            payload = factory.task(
                task_list["id"],
                task_group["id"],
                description="Task lifecycle test description",
                metadata=[factory.task_metadata(field["id"], value)],
            )
            response = http_client.post("/api/v1/task", json=payload)
            task = http_client.expect(response, 200).json()
            assert task["taskList"]["id"] == task_list["id"]
            assert task["description"] == payload["description"]
            assert task["taskMetaData"][0]["customFieldIdentifier"] == field["id"]
            assert task["taskMetaData"][0]["value"] == value

        with allure.step("Delete task"):
            response = http_client.delete(f"/api/v1/task/{task['id']}")
            http_client.expect(response, 204)

        for resource in (field_resource, group_resource, list_resource):
            with allure.step(f"Delete {resource['type']}"):
                response = http_client.delete(resource["endpoint"])
                http_client.expect(response, 200)
                cleanup_resources.remove(resource)
