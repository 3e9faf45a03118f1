"""
Clinical Assistant: Hardcoded Branching vs. Agentic Tool Calling

A small healthcare assistant that answers clinician questions two ways:
a rule-based path that picks a fixed prompt, and an agentic path where the
LLM decides which backend tools (guidelines, patient history, drug
interactions) to call.
"""

__version__ = "0.1.0"
