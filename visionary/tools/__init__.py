"""Image compute tools: generation, editing and thumbnails."""
