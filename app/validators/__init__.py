"""
app/validators package marker.
"""

from app.validators.record_selection_validator import RecordSelectionValidator, is_record_id

__all__ = [
    "RecordSelectionValidator",
    "is_record_id",
]
