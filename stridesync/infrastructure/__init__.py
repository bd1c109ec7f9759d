"""StrideSync infrastructure - location sources and remote sync."""
