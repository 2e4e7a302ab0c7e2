"""
Advertly - Marketing strategy generation for service businesses.

Turns onboarding answers into a complete ad strategy (competitor analysis,
ad copy variants, landing page structure) using OpenAI and, when configured,
real competitor ads from the Facebook Ads Library.
"""

__version__ = "0.1.0"
__author__ = "Advertly Team"
