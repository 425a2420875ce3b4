"""
Prompt construction for property questions.

Serializes the catalog into the system prompt sent with every question.
"""

import logging
from typing import List, Optional

from ..catalog.loader import Catalog, PropertyRecord

logger = logging.getLogger(__name__)

SYSTEM_PROMPT_TEMPLATE = """You are a helpful and knowledgeable rental property assistant. You have access to {count} rental properties and can answer questions about them quickly and accurately.

PROPERTY DATABASE:
{property_data}

INSTRUCTIONS:
- Answer questions about rental properties using ONLY the data provided above
- Be concise but informative in your responses
- Always mention specific property details (price, location, facilities) when relevant
- If asked about properties not in the database, politely explain you only have information about the {count} properties listed
- For location-based queries, suggest the most relevant properties
- For budget-based queries, recommend properties within the specified price range
- For facility-based queries (bedrooms, bathrooms, parking), match user needs to property facilities
- Always format prices as shown (e.g., $123/night)

RESPONSE FORMAT:
- Keep responses under 200 words
- Use bullet points for multiple property recommendations
- Include property names, locations, and prices
- Mention key facilities that match the user's needs
- Write in a friendly, conversational tone
- If there is no exact match, say so and offer the closest alternatives"""


def format_property(record: PropertyRecord) -> str:
    return (
        f"Property {record.index}: {record.title}\n"
        f"- Location: {record.location}\n"
        f"- Price: {record.price_display}\n"
        f"- Description: {record.description}\n"
        f"- Facilities: {record.facilities_text}\n"
        f"- Address: {record.address}"
    )


def format_user_message(question: str) -> str:
    return f"Question: {question}"


class PromptBuilder:
    """Builds the system prompt for a catalog.

    With caching enabled the prompt is rendered once, on first use, and
    the same string is returned afterwards. The builder is the only
    writer of its cache.
    """

    def __init__(self, catalog: Catalog, cache: bool = True):
        self.catalog = catalog
        self.cache = cache
        self._cached_prompt: Optional[str] = None

    def render(self) -> str:
        """Render the system prompt from the catalog, bypassing the cache."""
        property_data = "\n\n".join(format_property(p) for p in self.catalog)
        return SYSTEM_PROMPT_TEMPLATE.format(
            count=len(self.catalog),
            property_data=property_data
        )

    def system_prompt(self) -> str:
        if not self.cache:
            return self.render()
        if self._cached_prompt is None:
            self._cached_prompt = self.render()
            logger.debug("Cached system prompt (%d chars)", len(self._cached_prompt))
        return self._cached_prompt

    def suggested_questions(self) -> List[str]:
        """Example questions tailored to the loaded catalog."""
        if not len(self.catalog):
            return []

        cities = self.catalog.cities()
        prices = [p.price for p in self.catalog if p.price > 0] or [0]
        midpoint = round((min(prices) + max(prices)) / 2)
        second_city = cities[1] if len(cities) > 1 else cities[0]

        return [
            "What properties do you have available?",
            f"Show me properties under ${midpoint}/night",
            f"What properties are available in {cities[0]}?",
            "I need a property with at least 2 bedrooms",
            "What's the cheapest property available?",
            "Show me luxury properties",
            "I need a place with parking",
            f"Do you have anything in {second_city}?",
            "What properties have the most bathrooms?",
            "I'm looking for a romantic getaway",
        ]
