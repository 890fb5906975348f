"""Static help texts used when the LLM gives no guidance of its own."""

from __future__ import annotations

CAPABILITIES = """Here's what I can help you with:

Weather information:
• Get current weather for any city or location
• Check temperature, conditions and humidity

Database operations:
• Count records (employees, orders, products, etc.)
• List/display records with optional filters
• Add new records (employees, orders, products)
• Update existing records
• Delete records

Examples:
• "Tell me the weather in San Francisco"
• "How many employees are there?"
• "List all orders over $500"
• "Add a new employee named John Doe"
• "Update employee John's salary to $80000"
• "Delete product PROD-001"
""".strip()


def weather_help() -> str:
    return (
        "I need a location to check the weather. Please specify a city or location."
        f"\n\n{CAPABILITIES}"
    )


def database_help(missing_info: str | None = None) -> str:
    message = "I need more information to help you with that database query."
    if missing_info:
        message += f" Specifically, I need: {missing_info.rstrip('.')}."
    return f"{message}\n\n{CAPABILITIES}"


def general_help() -> str:
    return f"I'm not sure what you're asking for. Could you please clarify?\n\n{CAPABILITIES}"
