"""Request body helpers."""
from typing import Type, TypeVar

from flask import request
from pydantic import BaseModel

M = TypeVar('M', bound=BaseModel)


def parse_body(model: Type[M]) -> M:
    """Validate the JSON body against a request contract.
    
    pydantic.ValidationError propagates to the app error handler (400).
    """
    return model.model_validate(request.get_json(silent=True) or {})
