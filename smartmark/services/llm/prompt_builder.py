from __future__ import annotations

import json
from typing import List, Optional

from smartmark.config.constants import CATEGORY_TAXONOMY


class PromptBuilder:
    """Builds prompts for bookmark categorization."""

    def __init__(self, categories: Optional[List[str]] = None):
        self.categories = list(categories or CATEGORY_TAXONOMY)

    def build_categorization_prompt(self, url: str, title: str) -> str:
        """Build the user prompt for a single bookmark.

        Args:
            url: Bookmark URL.
            title: Bookmark title as saved by the user.

        Returns:
            Prompt asking for one raw JSON object with category,
            subcategory and description.
        """
        example = json.dumps(
            {
                "category": "Technology",
                "subcategory": "Web Development",
                "description": "Brief 1-2 sentence description",
            },
            indent=2,
        )
        return (
            "Categorize this bookmark:\n"
            f"Title: {title}\n"
            f"URL: {url}\n\n"
            "Respond ONLY with a valid JSON object in this exact format "
            "(no markdown, no code blocks):\n"
            f"{example}\n\n"
            f"Categories: {', '.join(self.categories)}"
        )


__all__ = ["PromptBuilder"]
