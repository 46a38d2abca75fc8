from advisor_engine.advisors.interface import (
    DEFAULT_ORDER,
    HIGHEST_PRECEDENCE,
    LOWEST_PRECEDENCE,
    Advisor,
)
from advisor_engine.advisors.chain import AdvisorChain
from advisor_engine.advisors.aggregator import aggregate_stream
from advisor_engine.advisors.guard_advisor import InputValidationAdvisor
from advisor_engine.advisors.logging_advisor import SimpleLoggingAdvisor
from advisor_engine.advisors.memory_advisor import MessageMemoryAdvisor
from advisor_engine.advisors.retrieval_advisor import QuestionAnswerAdvisor

__all__ = [
    "DEFAULT_ORDER",
    "HIGHEST_PRECEDENCE",
    "LOWEST_PRECEDENCE",
    "Advisor",
    "AdvisorChain",
    "InputValidationAdvisor",
    "MessageMemoryAdvisor",
    "QuestionAnswerAdvisor",
    "SimpleLoggingAdvisor",
    "aggregate_stream",
]
