class ServiceError(Exception):
    pass


class ModelConfigurationError(ServiceError):
    pass


class PromptTemplateError(ServiceError):
    pass


class ModelCallError(ServiceError):
    pass


class RateLimitedError(ModelCallError):
    pass


class UnknownToolError(ModelCallError):
    def __init__(self, tool_name: str):
        super().__init__(f"Model requested an unknown tool: {tool_name}")
        self.tool_name = tool_name


class ToolInputError(ModelCallError):
    def __init__(self, tool_name: str, reason: str):
        super().__init__(f"Invalid arguments for {tool_name}: {reason}")
        self.tool_name = tool_name
        self.reason = reason


class TurnCancelledError(ServiceError):
    def __init__(self, reason: str):
        super().__init__(f"Turn cancelled: {reason}")
        self.reason = reason
