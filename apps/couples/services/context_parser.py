"""
Expense context parser.

Finds a routing keyword such as ``@pareja`` or ``@business`` in a free-text
expense description, strips it and reports which kind of account the
expense belongs to:

    >>> parse_context("$50 groceries @pareja")
    ParsedContext(context='couple', clean_description='$50 groceries', confidence=0.95, matched_keyword='@pareja')

``parse_context`` is pure text processing. The service wrappers below it
resolve the context to one of the caller's accounts.
"""

import re
from dataclasses import dataclass, asdict
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence

from apps.accounts.models import AccountType, User
from apps.accounts.services import get_user_accounts
from apps.couples.models import CoupleSettings
from apps.expenses.models import CoupleExpenseType


# Group order, then keyword order, decides which keyword wins
CONTEXT_KEYWORDS: Dict[str, List[str]] = {
    AccountType.PERSONAL: ['@personal', '@yo', '@mio'],
    AccountType.COUPLE: ['@pareja', '@couple', '@nosotros', '@nuestro'],
    AccountType.FAMILY: ['@familia', '@family', '@fam'],
    AccountType.BUSINESS: ['@negocio', '@business', '@trabajo', '@empresa'],
}

BASE_CONFIDENCE = 0.8
AT_PREFIX_BONUS = 0.15
REPEAT_PENALTY = 0.1
MIN_CONFIDENCE = 0.1
MAX_CONFIDENCE = 1.0

SUGGESTION_RULES = [
    # (context, keywords, confidence, reason)
    (
        AccountType.BUSINESS,
        ['office', 'meeting', 'client', 'business', 'conference', 'work', 'professional'],
        0.7,
        'Business-related keywords detected',
    ),
    (
        AccountType.FAMILY,
        ['kids', 'children', 'family', 'school', 'childcare', 'family trip'],
        0.8,
        'Family-related keywords detected',
    ),
    (
        AccountType.COUPLE,
        ['dinner', 'groceries', 'rent', 'utilities', 'vacation', 'movie', 'date'],
        0.6,
        'Typical shared expense category',
    ),
]
HIGH_AMOUNT_THRESHOLD = Decimal('100')


@dataclass(frozen=True)
class ParsedContext:
    context: Optional[str]
    clean_description: str
    confidence: float
    matched_keyword: Optional[str] = None


@dataclass
class ExpenseContext:
    """Parsed context plus the account it resolves to for the caller."""

    context: Optional[str]
    clean_description: str
    confidence: float
    matched_keyword: Optional[str] = None
    suggested_account_id: Optional[str] = None
    account_type: Optional[str] = None
    expense_type: Optional[str] = None
    id: Optional[str] = None

    def to_dict(self):
        return asdict(self)


@dataclass(frozen=True)
class ContextSuggestion:
    context: str
    confidence: float
    reason: str


def _keyword_pattern(keyword: str) -> re.Pattern:
    # Whole token only: '@fam' must not match inside '@familia'
    return re.compile(r'\s*(?<![\w@])' + re.escape(keyword) + r'(?!\w)\s*', re.IGNORECASE)


def parse_context(
    text: str,
    keyword_groups: Dict[str, Sequence[str]] = CONTEXT_KEYWORDS
) -> ParsedContext:
    """
    Extract the routing context from an expense description.

    The first keyword found (by group order, then keyword order) wins and
    every occurrence of it is removed together with surrounding whitespace.

    Confidence starts at 0.8, gains 0.15 for ``@`` keywords and loses 0.1
    per additional occurrence, clamped to [0.1, 1.0].

    Args:
        text: Free-text description
        keyword_groups: Context name -> trigger keywords

    Returns:
        ParsedContext; context None and confidence 0 when nothing matched
    """
    text = text or ''

    for context, keywords in keyword_groups.items():
        for keyword in keywords:
            pattern = _keyword_pattern(keyword)
            occurrences = len(pattern.findall(text))
            if not occurrences:
                continue

            clean = re.sub(r'\s{2,}', ' ', pattern.sub(' ', text)).strip()
            return ParsedContext(
                context=str(context),
                clean_description=clean,
                confidence=_confidence(keyword, occurrences),
                matched_keyword=keyword,
            )

    return ParsedContext(context=None, clean_description=text.strip(), confidence=0.0)


def _confidence(keyword: str, occurrences: int) -> float:
    confidence = BASE_CONFIDENCE
    if keyword.startswith('@'):
        confidence += AT_PREFIX_BONUS
    if occurrences > 1:
        confidence -= REPEAT_PENALTY * (occurrences - 1)
    return round(max(MIN_CONFIDENCE, min(MAX_CONFIDENCE, confidence)), 2)


def parse_expense_context(*, description: str, user: User) -> ExpenseContext:
    """
    Parse a description and resolve the context to one of the user's accounts.

    The most recently active account of the matching type is suggested. For
    couple accounts the account's default expense type is included.
    """
    parsed = parse_context(description)
    result = ExpenseContext(
        context=parsed.context,
        clean_description=parsed.clean_description,
        confidence=parsed.confidence,
        matched_keyword=parsed.matched_keyword,
    )
    if parsed.context is None:
        return result

    account = get_user_accounts(user=user, account_type=parsed.context).first()
    if account is None:
        return result

    result.suggested_account_id = str(account.id)
    result.account_type = account.type
    if account.type == AccountType.COUPLE:
        couple_settings = CoupleSettings.objects.filter(account=account).first()
        result.expense_type = (
            couple_settings.default_expense_type if couple_settings else CoupleExpenseType.SHARED
        )
    return result


def batch_parse_expense_contexts(*, items: Iterable[dict], user: User) -> List[ExpenseContext]:
    """
    Parse several descriptions. Each item is ``{'description': ..., 'id': ...}``
    and the optional id is echoed back.
    """
    results = []
    for item in items:
        result = parse_expense_context(description=item['description'], user=user)
        result.id = item.get('id')
        results.append(result)
    return results


def suggest_context(
    *,
    description: str,
    amount: Decimal,
    user: User,
    category: Optional[str] = None
) -> List[ContextSuggestion]:
    """
    Heuristic context suggestions, highest confidence first.

    A context is only suggested when the user has an account of that type.
    Falls back to personal with low confidence.
    """
    account_types = set(
        get_user_accounts(user=user).values_list('type', flat=True)
    )
    text = f"{description} {category or ''}".lower()

    suggestions = []
    for context, keywords, confidence, reason in SUGGESTION_RULES:
        if context in account_types and any(keyword in text for keyword in keywords):
            suggestions.append(ContextSuggestion(context=str(context), confidence=confidence, reason=reason))

    if amount is not None and Decimal(str(amount)) > HIGH_AMOUNT_THRESHOLD and AccountType.COUPLE in account_types:
        suggestions.append(ContextSuggestion(
            context=str(AccountType.COUPLE),
            confidence=0.5,
            reason='High amount suggests shared expense',
        ))

    if not suggestions:
        suggestions.append(ContextSuggestion(
            context=str(AccountType.PERSONAL),
            confidence=0.3,
            reason='No specific context detected, defaulting to personal',
        ))

    return sorted(suggestions, key=lambda suggestion: suggestion.confidence, reverse=True)
