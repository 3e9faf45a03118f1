"""
Rule-Based Assistant (hardcoded branching)

The traditional way of wiring an LLM into a backend: the application code
inspects the question, picks one of two fixed prompts, and makes a single
model call. The model never sees patient data or guidelines unless the
developer pasted them into the prompt, and adding a new capability means
adding another branch.

This is the baseline the tool-calling agent is compared against.
"""

import logging
from dataclasses import dataclass
from typing import Sequence

from .prompts import DRUG_SAFETY_PROMPT, GENERAL_GUIDANCE_PROMPT

logger = logging.getLogger(__name__)

DRUG_KEYWORDS = ("interact", "combine", "together with", "taken with", "co-prescrib")

BRANCH_DRUG_INTERACTION = "drug_interaction"
BRANCH_GENERAL = "general"


@dataclass
class RuleBasedResult:
    question: str
    branch: str
    answer: str
    system_prompt: str


class RuleBasedAssistant:
    """
    Keyword branch -> fixed prompt -> one chat call.

    Parameters:
        llm: Chat client exposing ``chat(messages, tools=None)``
        keywords: Substrings that route a question to the drug-safety prompt
    """

    def __init__(self, llm, keywords: Sequence[str] = DRUG_KEYWORDS):
        self.llm = llm
        self.keywords = tuple(k.lower() for k in keywords)

    def classify(self, question: str) -> str:
        text = question.lower()
        if any(keyword in text for keyword in self.keywords):
            return BRANCH_DRUG_INTERACTION
        return BRANCH_GENERAL

    def answer(self, question: str) -> RuleBasedResult:
        branch = self.classify(question)
        system_prompt = DRUG_SAFETY_PROMPT if branch == BRANCH_DRUG_INTERACTION else GENERAL_GUIDANCE_PROMPT
        logger.info("Rule-based branch: %s", branch)

        response = self.llm.chat([
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": question},
        ])
        return RuleBasedResult(
            question=question,
            branch=branch,
            answer=response.content,
            system_prompt=system_prompt,
        )
