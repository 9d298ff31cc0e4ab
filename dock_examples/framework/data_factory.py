"""
================================================================================
Test Data Factory
================================================================================

Unique identifiers and request payloads for the Dock Health example flows.

Features:
- Unique emails, domains and MRNs under the developer's own domain
- Webhook secrets
- Payload builders for every resource the example flows create
- Cleanup tracking for automatic teardown

================================================================================
"""

import random
import secrets
import string
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional
from uuid import uuid4

from loguru import logger

from .config_loader import ConfigLoader


# Length of the random part of generated emails, domains and MRNs
GENERATED_ITEM_LENGTH = 8

WEBHOOK_SECRET_LENGTH = 36

# Custom field types usable on a task, with display names
TASK_FIELD_TYPES = [
    ("TEXT", "Short Text Field"),
    ("LONG_TEXT", "Rich Text Field"),
    ("NUMBER", "Number"),
    ("DATE", "Calendar Date"),
    ("HYPERLINK", "Link"),
    ("BOOLEAN", "Yes/No"),
]

# Sample task metadata value per field type
TASK_FIELD_VALUES: Dict[str, Any] = {
    "TEXT": "my custom field text value",
    "LONG_TEXT": "my custom field rich text value",
    "NUMBER": 123,
    "DATE": "2024-05-22T07:00:00.000Z",
    "HYPERLINK": "https://www.dock.health",
    "BOOLEAN": True,
}

PATIENT_DISPLAY_OPTIONS = ["PATIENT_HEADER", "PATIENT_SEARCH"]

WORKFLOW_TEMPLATE_TYPE = "SMARTFLOW"


# ================================================================================
# Data Models
# ================================================================================

@dataclass
class GeneratedData:
    """Container for generated test data with metadata."""
    data: Dict[str, Any]
    data_type: str
    created_at: datetime = field(default_factory=datetime.now)
    cleanup_handler: Optional[Callable] = None

    def __post_init__(self):
        self.tracking_id = uuid4().hex[:8]


# ================================================================================
# Factory Base
# ================================================================================

class DataFactoryBase:
    """
    Base class for test data factories.

    Provides common functionality for generating test data
    with automatic tracking and cleanup support.
    """

    # Prefix for all auto-generated names
    PREFIX = "autotest_"

    def __init__(self, seed: Optional[int] = None):
        """
        Args:
            seed: Random seed for reproducible data generation
        """
        self._random = random.Random(seed)
        self._generated_items: List[GeneratedData] = []

    def _generate_unique_name(self, prefix: str = "") -> str:
        timestamp = datetime.now().strftime("%Y%m%d%H%M%S")
        random_part = uuid4().hex[:8]
        return f"{self.PREFIX}{prefix}{timestamp}_{random_part}"

    def _random_string(self, length: int = 10, chars: str = None) -> str:
        chars = chars or string.ascii_lowercase + string.digits
        return ''.join(self._random.choice(chars) for _ in range(length))

    def track(self, data: Dict[str, Any], data_type: str,
              cleanup_handler: Optional[Callable] = None) -> GeneratedData:
        """
        Track generated data for later cleanup.

        Args:
            data: The created resource
            data_type: Type of data (e.g., "patient", "task")
            cleanup_handler: Function deleting this resource

        Returns:
            GeneratedData object with tracking info
        """
        generated = GeneratedData(
            data=data,
            data_type=data_type,
            cleanup_handler=cleanup_handler
        )
        self._generated_items.append(generated)
        return generated

    def discard(self, generated: GeneratedData) -> None:
        """Stop tracking data the test already cleaned up itself."""
        self._generated_items = [
            item for item in self._generated_items if item is not generated
        ]

    def cleanup_all(self):
        """Clean up all tracked data in reverse order."""
        for item in reversed(self._generated_items):
            if item.cleanup_handler:
                try:
                    item.cleanup_handler(item.data)
                except Exception as e:
                    logger.warning(f"Cleanup failed for {item.data_type}: {e}")

        self._generated_items.clear()

    @property
    def generated_count(self) -> int:
        return len(self._generated_items)


# ================================================================================
# Dock Health Factory
# ================================================================================

class DockDataFactory(DataFactoryBase):
    """
    Identifiers and payloads for Dock Health resources.

    Usage:
        factory = DockDataFactory(domain="example.com")
        patient = factory.patient()
        field = factory.custom_field("TEXT", "text field")
    """

    def __init__(
        self,
        domain: Optional[str] = None,
        seed: Optional[int] = None,
        config: Optional[ConfigLoader] = None,
    ):
        super().__init__(seed)
        if domain is None:
            domain = (config or ConfigLoader()).get("domain")
        self.domain = domain

    # --------------------------------------------------------------------------
    # Identifiers
    # --------------------------------------------------------------------------

    def _generated_item(self) -> str:
        if not self.domain:
            raise ValueError("DOMAIN is undefined!")
        return self._random_string(GENERATED_ITEM_LENGTH)

    def generate_email(self) -> str:
        """``<random>@<domain>``, unique per call."""
        return f"{self._generated_item()}@{self.domain}".lower()

    def generate_domain(self) -> str:
        """``<random>.<domain>``, unique per call."""
        return f"{self._generated_item()}.{self.domain}".lower()

    def generate_mrn(self) -> str:
        """``<random>-<domain>``, unique per call."""
        return f"{self._generated_item()}-{self.domain}".lower()

    def generate_webhook_secret(self) -> str:
        """Signing secret; drawn from `secrets`, never from the seeded generator."""
        return "".join(
            secrets.choice(string.ascii_lowercase) for _ in range(WEBHOOK_SECRET_LENGTH)
        )

    # --------------------------------------------------------------------------
    # Payloads
    # --------------------------------------------------------------------------

    def patient(self, dob: str = "2000-01-01", **overrides) -> Dict[str, Any]:
        suffix = self._random_string(6)
        data = {
            "firstName": f"John {suffix}",
            "lastName": f"Doe {suffix}",
            "dob": dob,
            "mrn": self.generate_mrn(),
        }
        data.update(overrides)
        return data

    def patient_note(self, patient_id: str, **overrides) -> Dict[str, Any]:
        data = {
            "patient": {"id": patient_id},
            "description": f"Patient note {self._random_string(8)}",
        }
        data.update(overrides)
        return data

    def user(self, **overrides) -> Dict[str, Any]:
        data = {
            "email": self.generate_email(),
            "firstName": "First",
            "lastName": "Last",
        }
        data.update(overrides)
        return data

    def organization(self, **overrides) -> Dict[str, Any]:
        domain = self.generate_domain()
        data = {"domain": domain, "name": f"new-org-{domain}"}
        data.update(overrides)
        return data

    def task_list(self, **overrides) -> Dict[str, Any]:
        name = self._generate_unique_name("list_")
        data = {
            "listName": name,
            "listDescription": f"{name} description",
        }
        data.update(overrides)
        return data

    def task_group(self, task_list_id: str, **overrides) -> Dict[str, Any]:
        data = {
            "taskList": {"id": task_list_id},
            "groupName": self._generate_unique_name("group_"),
        }
        data.update(overrides)
        return data

    def custom_field(
        self,
        field_type: str,
        name: str,
        target_type: str = "TASK",
        field_category_type: str = "TASK_CORE",
        **overrides
    ) -> Dict[str, Any]:
        data = {
            "targetType": target_type,
            "fieldCategoryType": field_category_type,
            "fieldType": field_type,
            "name": name,
        }
        data.update(overrides)
        return data

    def select_field(
        self,
        field_type: str,
        name: str,
        option_names: List[str],
        **overrides
    ) -> Dict[str, Any]:
        """Patient PICK_LIST / MULTI_SELECT field with the given options."""
        data = self.custom_field(
            field_type,
            name,
            target_type="PATIENT",
            field_category_type="PATIENT_PERSONAL",
            placeholder="Placeholder",
            required=False,
            sortIndex=1,
            options=self.field_options(*option_names),
            displayOptions=list(PATIENT_DISPLAY_OPTIONS),
        )
        data.update(overrides)
        return data

    @staticmethod
    def field_options(*names: str) -> List[Dict[str, str]]:
        return [{"name": name, "description": name} for name in names]

    def task(
        self,
        task_list_id: Optional[str],
        task_group_id: Optional[str] = None,
        description: Optional[str] = None,
        metadata: Optional[List[Dict[str, Any]]] = None,
        **overrides
    ) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "taskList": {"id": task_list_id},
            "description": description or self._generate_unique_name("task_"),
        }
        if task_group_id is not None:
            data["taskGroup"] = {"id": task_group_id}
        if metadata:
            data["taskMetaData"] = metadata
        data.update(overrides)
        return data

    @staticmethod
    def task_metadata(field_id: str, value: Any) -> Dict[str, Any]:
        return {"customFieldIdentifier": field_id, "value": value}

    def profile_type(self, **overrides) -> Dict[str, Any]:
        suffix = self._random_string(4)
        data = {
            "name": f"ProfileType {suffix}",
            "description": f"ProfileType description {suffix}",
        }
        data.update(overrides)
        return data

    def profile(self, profile_type_id: str, field_id: str, **overrides) -> Dict[str, Any]:
        data = {
            "profileTypeId": profile_type_id,
            "fields": [{
                "profileTypeField": {"identifier": field_id},
                "values": [{"value": f"my custom field text value {self._random_string(4)}"}],
            }],
        }
        data.update(overrides)
        return data

    def workflow_template(self, **overrides) -> Dict[str, Any]:
        data = {
            "name": self._generate_unique_name("workflow_"),
            "templateType": WORKFLOW_TEMPLATE_TYPE,
        }
        data.update(overrides)
        return data

    @staticmethod
    def workflow_deployment(
        task_list_id: str,
        task_group_id: str,
        template_id: str,
    ) -> Dict[str, Any]:
        return {
            "taskList": {"id": task_list_id},
            "taskGroup": {"id": task_group_id},
            "taskWorkflowTemplate": {"id": template_id},
        }

    @staticmethod
    def workflow_task(template_id: str, description: str, intent_type: str = "STANDARD") -> Dict[str, Any]:
        """Task attached to a workflow template (not yet deployed)."""
        return {
            "description": description,
            "taskWorkflow": {"id": template_id},
            "taskList": {"id": None},
            "intentType": intent_type,
        }

    @staticmethod
    def task_link(source_id: str, target_id: str, outcome_id: str) -> Dict[str, Any]:
        return {
            "sourceTaskIdentifier": source_id,
            "targetTaskIdentifier": target_id,
            "isDependent": True,
            "taskOutcomeIdentifier": outcome_id,
        }

    @staticmethod
    def webhook(url: str, secret: str, events: List[str], **overrides) -> Dict[str, Any]:
        data = {"url": url, "secret": secret, "events": list(events)}
        data.update(overrides)
        return data


# ================================================================================
# Convenience Functions
# ================================================================================

def generate_email(domain: Optional[str] = None) -> str:
    return DockDataFactory(domain).generate_email()


def generate_domain(domain: Optional[str] = None) -> str:
    return DockDataFactory(domain).generate_domain()


def generate_mrn(domain: Optional[str] = None) -> str:
    return DockDataFactory(domain).generate_mrn()


def generate_webhook_secret() -> str:
    return DockDataFactory(domain="").generate_webhook_secret()
