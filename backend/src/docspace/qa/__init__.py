"""Question/answer pair generation from extracted chunks."""
