"""
Couples App - Shared Finances for Two-Person Accounts

This app settles shared spending between the two partners of a couple
account and manages the couple-specific features layered on expenses.

Key Features:
- Four financial models (50/50, proportional to income, everything in
  common, mixed) with expected-contribution arithmetic
- Outstanding balance and "who owes whom" with a rounding tolerance
- Gift mode: concealed expenses revealed manually or on a schedule
- Premium tier derived from both partners' subscriptions
- Settings with an append-only audit history
- Context keywords (@pareja, @business, ...) in expense descriptions

Architecture:
- Models: CoupleSettings, CoupleSettingsChange, FeatureUsage
- Services: function modules under services/ (see services/__init__.py)
- Views: RESTful API under /api/couples/
- Jobs: management commands refresh_couple_premium, reveal_due_gifts
"""
