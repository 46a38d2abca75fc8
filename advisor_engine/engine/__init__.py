from advisor_engine.engine.errors import (
    BackendError,
    CallTimeoutError,
    ChainAborted,
    EngineError,
    PromptTemplateError,
    StructuredOutputParseError,
    ToolDispatchError,
    ToolRoundLimitExceeded,
    UnsupportedOutputTypeError,
)
from advisor_engine.engine.models import (
    CallResult,
    ChatOptions,
    ChatResponse,
    Message,
    Request,
    ResponseFragment,
    ResultKind,
    Role,
    ToolCallRequest,
    ToolResult,
)
from advisor_engine.engine.llm import DemoMockLLMClient, LLMClient, MockLLMClient, OpenAILLMClient
from advisor_engine.engine.structured import StructuredOutputConverter

__all__ = [
    "BackendError",
    "CallResult",
    "CallTimeoutError",
    "ChainAborted",
    "ChatOptions",
    "ChatResponse",
    "DemoMockLLMClient",
    "EngineError",
    "LLMClient",
    "Message",
    "MockLLMClient",
    "OpenAILLMClient",
    "PromptTemplateError",
    "Request",
    "ResponseFragment",
    "ResultKind",
    "Role",
    "StructuredOutputConverter",
    "StructuredOutputParseError",
    "ToolCallRequest",
    "ToolDispatchError",
    "ToolResult",
    "ToolRoundLimitExceeded",
    "UnsupportedOutputTypeError",
]
