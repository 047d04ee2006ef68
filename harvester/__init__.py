"""Review harvester — paginated review scraping and record extraction."""
