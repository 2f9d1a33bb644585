"""External collaborators: language models and the knowledge source."""
