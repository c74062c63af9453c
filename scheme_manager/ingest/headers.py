# ==============================================================================
# scheme_manager/ingest/headers.py
# ------------------------------------------------------------------------------
# Matches the headers of an uploaded file against the expected header tables
# in schema.py, tolerating differences in case, spacing and punctuation.
# ==============================================================================

import logging
import re

from .errors import FileStructureError

_NON_LETTERS = re.compile(r'[^a-z]')


def normalize_header(header):
    """
    Canonical form of a header: lower-cased with every non-letter removed.
    Example: "Distributor_ID " -> "distributorid"
    """
    return _NON_LETTERS.sub('', str(header).lower())


def find_header_index(headers, target):
    """Returns the index of the first header equivalent to `target`, or -1."""
    normalized_target = normalize_header(target)
    for index, header in enumerate(headers):
        if normalize_header(header) == normalized_target:
            return index
    return -1


def create_header_mapping(headers, expected_headers):
    """
    Resolves each logical field of `expected_headers` to a column index.

    Args:
        headers (list): Header cells of the file, in column order.
        expected_headers (list): (field, variations) pairs from schema.py.

    Returns:
        tuple: A tuple containing:
            - dict: field name -> column index for every resolved field.
            - list: display names of the fields that could not be resolved.
    """
    mapping = {}
    missing_headers = []

    for field, variations in expected_headers:
        found_index = -1
        for variation in variations:
            found_index = find_header_index(headers, variation)
            if found_index != -1:
                break

        if found_index != -1:
            mapping[field] = found_index
            logging.debug(f"Mapped {field} to column {found_index} ({headers[found_index]})")
        else:
            missing_headers.append(variations[0])

    return mapping, missing_headers


def require_header_mapping(headers, expected_headers):
    """Like create_header_mapping, but rejects the file if any field is missing."""
    mapping, missing_headers = create_header_mapping(headers, expected_headers)
    if missing_headers:
        logging.warning(f"Rejecting file, missing columns: {missing_headers}. Found headers: {headers}")
        raise FileStructureError(f"Missing required columns: {', '.join(missing_headers)}")
    return mapping
