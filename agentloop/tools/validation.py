import jsonschema

from agentloop.tools.base import Tool, normalize_schema


class ToolValidator:
    @staticmethod
    def validate(tool: Tool, arguments: object) -> tuple[bool, str | None]:
        if not isinstance(arguments, dict):
            return False, f"arguments must be a JSON object, got {type(arguments).__name__}"
        try:
            jsonschema.validate(
                instance=arguments,
                schema=normalize_schema(tool.parameters),
            )
            return True, None
        except jsonschema.ValidationError as e:
            return False, str(e.message)
