"""
Notion Seeker

Answers natural-language questions from a Notion workspace. A generative
model refines title-search keywords over several rounds, picks candidate
pages, judges whether their content answers the question, and writes the
final cited answer.

Usage:
    from seeker.common import load_config, ProviderPool, NotionClient
    from seeker.search import SearchOrchestrator, IntentClassifier
"""

__version__ = "0.1.0"
