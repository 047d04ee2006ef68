"""Scraper package — page sources, block cleaning & record extraction."""

from harvester.scraper.collector import clean, clean_fragment
from harvester.scraper.extractor import ExtractionPatterns, ReviewRecordExtractor, extract
from harvester.scraper.models import ParseErrorPolicy, ReviewRecord, ReviewTable

__all__ = [
    "clean",
    "clean_fragment",
    "extract",
    "ExtractionPatterns",
    "ReviewRecordExtractor",
    "ParseErrorPolicy",
    "ReviewRecord",
    "ReviewTable",
]
