"""
Plan-specific Validators

Request argument validation for the plan endpoints. Recurrence rules are
validated by the scheduling core; these only guard raw arguments.
"""

import re
import frappe
from frappe import _


def validate_docname(name: str, field_name: str = "name") -> str:
    """
    Validate a document name (ID).

    Ensures the name is not too long and doesn't contain injection patterns.

    Args:
        name: Document name to validate
        field_name: Name of field for error messages

    Returns:
        str: Validated document name

    Raises:
        frappe.ValidationError: If name is invalid
    """
    if not name:
        frappe.throw(_(f"{field_name} is required"), frappe.ValidationError)

    name = str(name).strip()

    if len(name) > 140:
        frappe.throw(_(f"{field_name} is too long"), frappe.ValidationError)

    # Plan and participant ids are URL-safe tokens
    if not re.match(r"^[A-Za-z0-9_\-]+$", name):
        frappe.throw(_(f"Invalid {field_name}"), frappe.ValidationError)

    return name


def parse_json_arg(value, field_name: str, expected_type=list):
    """
    Parse an argument that may arrive as a JSON string (form data) or
    already decoded (JSON body).

    Args:
        value: Raw argument
        field_name: Name of field for error messages
        expected_type: list or dict

    Returns:
        Parsed value, or None if value is empty

    Raises:
        frappe.ValidationError: If the value is not valid JSON of the expected type
    """
    if value in (None, ""):
        return None

    if isinstance(value, str):
        try:
            value = frappe.parse_json(value)
        except ValueError:
            frappe.throw(_(f"Invalid {field_name}: expected JSON"), frappe.ValidationError)

    if not isinstance(value, expected_type):
        frappe.throw(
            _(f"Invalid {field_name}: expected a JSON {expected_type.__name__}"),
            frappe.ValidationError
        )

    return value


def parse_id_list(value, field_name: str = "participant_ids") -> list:
    """
    Parse a list of ids given as a JSON array or a comma separated string.
    """
    if value in (None, ""):
        return []

    if isinstance(value, str) and not value.strip().startswith("["):
        return [item.strip() for item in value.split(",") if item.strip()]

    return [str(item) for item in parse_json_arg(value, field_name, list) or []]
