"""
This module validates the JSON structures that describe website pages
(template content, website content, imported content library items)
before they are written to the database. It checks the shape the
site builder and the editor both rely on.

Usage:
    from api.management.validators import validate_template_data
    validate_template_data(data)  # Raises ValueError if invalid
"""

from api.models import ContentType


def validate_website_content(content, label="content"):
    """
    Validates a {"pages": [...]} structure.

    Every page must be a dict with 'id', 'name' and 'slug', and its
    'elements' (when present) must be a list.

    Raises:
        ValueError: If the structure is invalid.
    """
    if not isinstance(content, dict):
        raise ValueError(f"'{label}' must be an object.")

    pages = content.get('pages')
    if not isinstance(pages, list):
        raise ValueError(f"'{label}.pages' must be a list.")

    seen_slugs = set()

    for index, page in enumerate(pages):
        if not isinstance(page, dict):
            raise ValueError(f"Page at index {index} in '{label}' must be an object.")

        for field in ('id', 'name', 'slug'):
            if not page.get(field):
                raise ValueError(f"Missing field '{field}' in page at index {index} of '{label}'.")

        elements = page.get('elements', [])
        if not isinstance(elements, list):
            raise ValueError(f"'elements' must be a list in page at index {index} of '{label}'.")

        if page['slug'] in seen_slugs:
            raise ValueError(f"Duplicate page slug '{page['slug']}' in '{label}'.")
        seen_slugs.add(page['slug'])


def validate_template_data(data):
    """
    Validates a list of template entries, as loaded by seed_templates.

    Args:
        data (list): List of dictionaries, each representing a template.

    Raises:
        ValueError: If required fields are missing or invalid.
    """
    if not isinstance(data, list):
        raise ValueError("Template data must be a list of templates.")

    required_fields = ['name', 'category', 'content']
    seen_names = set()

    for index, item in enumerate(data):
        if not isinstance(item, dict):
            raise ValueError(f"Template at index {index} must be an object.")

        for field in required_fields:
            if field not in item:
                raise ValueError(f"Missing field '{field}' in template at index {index}.")

        if item['name'] in seen_names:
            raise ValueError(f"Duplicate template name '{item['name']}' at index {index}.")
        seen_names.add(item['name'])

        validate_website_content(item['content'], label=f"templates[{index}].content")

        if 'settings' in item and not isinstance(item['settings'], dict):
            raise ValueError(f"'settings' must be an object in template at index {index}.")

        if 'styles' in item and not isinstance(item['styles'], str):
            raise ValueError(f"'styles' must be a string in template at index {index}.")


def clean_import_items(data):
    """
    Normalizes an uploaded content library file into a list of valid items.

    Accepts a list, an {"items": [...]} wrapper or a single object. Items
    without a title or with an unknown type are skipped.

    Returns:
        tuple: (valid_items, skipped_count)
    """
    if isinstance(data, dict) and isinstance(data.get('items'), list):
        items = data['items']
    elif isinstance(data, list):
        items = data
    elif isinstance(data, dict):
        items = [data]
    else:
        raise ValueError("Import file must contain an object or a list of objects.")

    valid, skipped = [], 0

    for item in items:
        if not isinstance(item, dict) or not item.get('title') or item.get('type') not in ContentType.values:
            skipped += 1
            continue
        valid.append(item)

    return valid, skipped
