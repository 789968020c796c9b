"""Data validation utilities.

This subpackage handles the checks run before a search:
- Data frame and response validation
- Explanatory column selection and factor detection
"""

from .validation import (
    validate_frame,
    validate_response,
    select_columns,
    factor_mask,
    check_spatial_reference,
    get_pool_info
)

__all__ = [
    'validate_frame',
    'validate_response',
    'select_columns',
    'factor_mask',
    'check_spatial_reference',
    'get_pool_info'
]
