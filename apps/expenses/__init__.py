"""
Expenses App - Expense Records

Expenses belong to an account and are paid by one user. Couple accounts
carry extra data on each expense: shared/personal classification, split
details, gift state, settlement markers, comments and reactions.
"""
