from django.urls import path
from . import views

app_name = 'couples'

urlpatterns = [
    # Couple account routes
    # GET  /api/couples/{account_id}/settings/                  - Get couple settings
    # PUT  /api/couples/{account_id}/settings/                  - Update couple settings
    # GET  /api/couples/{account_id}/settings/history/          - Settings change history
    # POST /api/couples/{account_id}/accept-invitation/         - Accept couple invitation
    # GET  /api/couples/{account_id}/stats/                     - Period statistics
    # GET  /api/couples/{account_id}/balance/                   - Unsettled balance
    # POST /api/couples/{account_id}/settle/                    - Settle shared expenses
    # GET  /api/couples/{account_id}/premium/                   - Subscription status
    # GET  /api/couples/{account_id}/features/                  - Feature status (?feature=)
    # POST /api/couples/{account_id}/features/{feature}/usage/  - Track feature usage
    # GET  /api/couples/{account_id}/gifts/                     - My gifts
    # POST /api/couples/{account_id}/gifts/                     - Create gift
    # GET  /api/couples/{account_id}/gifts/received/            - Received gifts
    path('<uuid:account_id>/settings/', views.couple_settings, name='settings'),
    path('<uuid:account_id>/settings/history/', views.settings_history, name='settings-history'),
    path('<uuid:account_id>/accept-invitation/', views.accept_invitation, name='accept-invitation'),
    path('<uuid:account_id>/stats/', views.couple_stats, name='stats'),
    path('<uuid:account_id>/balance/', views.contribution_balance, name='balance'),
    path('<uuid:account_id>/settle/', views.settle, name='settle'),
    path('<uuid:account_id>/premium/', views.subscription_status, name='premium'),
    path('<uuid:account_id>/features/', views.feature_status, name='features'),
    path('<uuid:account_id>/features/<str:feature>/usage/', views.feature_usage, name='feature-usage'),
    path('<uuid:account_id>/gifts/', views.gifts, name='gifts'),
    path('<uuid:account_id>/gifts/received/', views.received_gifts, name='received-gifts'),

    # Gift routes
    # PATCH  /api/couples/gifts/{gift_id}/         - Update hidden gift
    # DELETE /api/couples/gifts/{gift_id}/         - Delete hidden gift
    # POST   /api/couples/gifts/{gift_id}/reveal/  - Reveal gift
    path('gifts/<uuid:gift_id>/', views.gift_detail, name='gift-detail'),
    path('gifts/<uuid:gift_id>/reveal/', views.reveal, name='gift-reveal'),

    # Expense interactions
    path('expenses/<uuid:expense_id>/comments/', views.expense_comments, name='expense-comments'),
    path('expenses/<uuid:expense_id>/reactions/', views.expense_reactions, name='expense-reactions'),

    # Context parsing
    path('parse-context/', views.parse_context_view, name='parse-context'),
    path('suggest-context/', views.suggest_context_view, name='suggest-context'),
]
