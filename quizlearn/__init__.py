"""
quizlearn - learning analytics and gamified scoring for quiz platforms.

Packages:
- models: Attempt, scoring and leaderboard records
- services: Multi-attempt analysis, dynamic scoring, leaderboard ranking
- core: Settings, scoring configuration, logging, exceptions
"""

__version__ = "1.0.0"
