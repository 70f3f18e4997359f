"""Generation engines used by the story service API."""
