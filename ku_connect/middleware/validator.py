"""
Request Validator - checks path/query/body input against a pydantic schema.

Failures are reported as an ordered list of {field, message}, ordered by the
schema's field declaration. Required fields must be present and non-blank.
"""

from typing import Any, Dict, List, Sequence, Type

from pydantic import BaseModel, ValidationError

from ku_connect.core.errors import FieldError, RequestValidationFailed
from ku_connect.middleware.context import RequestContext


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class Validator:
    def collect(self, ctx: RequestContext, sources: Sequence[str]) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        for source in sources:
            if source == "path":
                data.update(ctx.path_params)
            elif source == "query":
                data.update(ctx.query_params)
            elif source == "body":
                if ctx.body_error:
                    raise RequestValidationFailed.single("body", ctx.body_error)
                if ctx.raw_body is None:
                    continue
                if not isinstance(ctx.raw_body, dict):
                    raise RequestValidationFailed.single("body", "Request body must be a JSON object")
                data.update(ctx.raw_body)
        return data

    def validate(self, ctx: RequestContext, schema: Type[BaseModel], sources: Sequence[str] = ("body",)) -> BaseModel:
        data = self.collect(ctx, sources)

        # Blank required values are treated as missing
        for name, info in schema.model_fields.items():
            if info.is_required() and name in data and _is_blank(data[name]):
                del data[name]

        try:
            return schema.model_validate(data)
        except ValidationError as exc:
            raise RequestValidationFailed(self._field_errors(schema, exc)) from None

    @staticmethod
    def _field_errors(schema: Type[BaseModel], exc: ValidationError) -> List[FieldError]:
        order = {name: i for i, name in enumerate(schema.model_fields)}
        errors = []
        for err in exc.errors():
            loc = [str(part) for part in err.get("loc", ())]
            field = ".".join(loc) or "body"
            if err["type"] == "missing":
                message = f"{field} is required"
            else:
                message = err["msg"].removeprefix("Value error, ")
            errors.append((order.get(loc[0] if loc else "", len(order)), FieldError(field, message)))
        # sort is stable, so pydantic's order is kept within a field
        errors.sort(key=lambda pair: pair[0])
        return [e for _, e in errors]
