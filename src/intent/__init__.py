"""Routing instruction extraction and validation.

The intent layer turns raw LLM output into a strict `RoutingInstruction` and resolves entity nouns
into canonical storage tags.
"""
