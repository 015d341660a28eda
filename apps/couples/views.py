import logging

from rest_framework import status, serializers as drf_serializers
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema, OpenApiParameter

from .serializers import (
    AcceptInvitationSerializer,
    CommentCreateSerializer,
    ContextSuggestionSerializer,
    ContributionBalanceSerializer,
    CoupleSettingsChangeSerializer,
    CoupleSettingsSerializer,
    CoupleSettingsUpdateSerializer,
    CoupleStatsSerializer,
    DateRangeSerializer,
    ExpenseCommentSerializer,
    ExpenseContextSerializer,
    ExpenseReactionSerializer,
    FeatureQuerySerializer,
    FeatureUsageResultSerializer,
    GiftCreateSerializer,
    GiftRevealSerializer,
    GiftSerializer,
    GiftUpdateSerializer,
    ParseContextSerializer,
    ReactionCreateSerializer,
    SettleResultSerializer,
    SuggestContextSerializer,
)
from apps.couples.services import (
    accept_couple_invitation,
    add_expense_comment,
    add_expense_reaction,
    batch_parse_expense_contexts,
    create_gift,
    delete_gift,
    get_all_feature_status,
    get_contribution_balance,
    get_couple_settings,
    get_couple_stats,
    get_feature_status,
    get_settings_history,
    get_subscription_status,
    list_my_gifts,
    list_received_gifts,
    reveal_gift,
    settle_shared_expenses,
    suggest_context,
    track_feature_usage,
    update_couple_settings,
    update_gift,
    ContributionSettingsInput,
    # Exceptions
    CouplesServiceError,
    NotFoundError,
    ForbiddenError,
    InvalidStateError,
    ValidationFailure,
)
from apps.couples.services.context_parser import parse_expense_context

logger = logging.getLogger(__name__)


ERROR_STATUS = [
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ForbiddenError, status.HTTP_403_FORBIDDEN),
    (InvalidStateError, status.HTTP_409_CONFLICT),
    (ValidationFailure, status.HTTP_400_BAD_REQUEST),
]


# Response serializers for API documentation
class ReceivedGiftsResponseSerializer(drf_serializers.Serializer):
    gifts = GiftSerializer(many=True)
    hidden_count = drf_serializers.IntegerField()


class ErrorResponseSerializer(drf_serializers.Serializer):
    error = drf_serializers.CharField()
    code = drf_serializers.CharField()


def error_response(error: CouplesServiceError) -> Response:
    """Map a couples service error to its HTTP status."""
    for error_class, http_status in ERROR_STATUS:
        if isinstance(error, error_class):
            break
    else:
        http_status = status.HTTP_400_BAD_REQUEST
    logger.debug("Couples request refused (%s): %s", error.code, error)
    return Response({'error': str(error), 'code': error.code}, status=http_status)


# ============================================================
# Settings
# ============================================================

@extend_schema(
    methods=['GET'],
    responses={200: CoupleSettingsSerializer, 403: ErrorResponseSerializer, 404: ErrorResponseSerializer},
    description="Get the couple settings of an account.",
    tags=['couples'],
)
@extend_schema(
    methods=['PUT'],
    request=CoupleSettingsUpdateSerializer,
    responses={200: CoupleSettingsSerializer, 400: ErrorResponseSerializer, 409: ErrorResponseSerializer},
    description="Update couple settings. Every change is recorded in the settings history.",
    tags=['couples'],
)
@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated])
def couple_settings(request, account_id):
    """Get or update couple settings."""
    if request.method == 'GET':
        try:
            settings = get_couple_settings(account_id=account_id, user=request.user)
        except CouplesServiceError as e:
            return error_response(e)
        return Response(CoupleSettingsSerializer(settings).data)

    serializer = CoupleSettingsUpdateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        settings = update_couple_settings(
            account_id=account_id,
            user=request.user,
            **serializer.to_kwargs()
        )
    except CouplesServiceError as e:
        return error_response(e)

    return Response(CoupleSettingsSerializer(settings).data)


@extend_schema(
    responses={200: CoupleSettingsChangeSerializer(many=True)},
    description="Get the change history of the couple settings, oldest first.",
    tags=['couples'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def settings_history(request, account_id):
    """Get settings change history."""
    try:
        history = get_settings_history(account_id=account_id, user=request.user)
    except CouplesServiceError as e:
        return error_response(e)
    return Response(CoupleSettingsChangeSerializer(history, many=True).data)


@extend_schema(
    request=AcceptInvitationSerializer,
    responses={200: CoupleSettingsSerializer, 409: ErrorResponseSerializer},
    description="Accept the couple invitation. The second partner's acceptance activates the premium tier.",
    tags=['couples'],
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def accept_invitation(request, account_id):
    """Accept couple invitation."""
    serializer = AcceptInvitationSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    contribution = serializer.validated_data.get('initial_contribution_settings')
    try:
        settings = accept_couple_invitation(
            account_id=account_id,
            user=request.user,
            preferred_financial_model=serializer.validated_data.get('preferred_financial_model'),
            initial_contribution_settings=(
                ContributionSettingsInput(**contribution) if contribution is not None else None
            ),
        )
    except CouplesServiceError as e:
        return error_response(e)

    return Response(CoupleSettingsSerializer(settings).data)


# ============================================================
# Statistics and settlement
# ============================================================

DATE_RANGE_PARAMETERS = [
    OpenApiParameter(name='start_date', type=str, description='First day (YYYY-MM-DD)'),
    OpenApiParameter(name='end_date', type=str, description='Last day (YYYY-MM-DD)'),
]


@extend_schema(
    parameters=DATE_RANGE_PARAMETERS,
    responses={200: CoupleStatsSerializer},
    description="Contribution statistics of a period (defaults to the current month).",
    tags=['couples'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def couple_stats(request, account_id):
    """Get couple statistics."""
    params = DateRangeSerializer(data=request.query_params)
    params.is_valid(raise_exception=True)

    try:
        stats = get_couple_stats(account_id=account_id, user=request.user, **params.validated_data)
    except CouplesServiceError as e:
        return error_response(e)

    return Response(CoupleStatsSerializer(stats).data)


@extend_schema(
    parameters=DATE_RANGE_PARAMETERS,
    responses={200: ContributionBalanceSerializer},
    description="Balance of unsettled shared expenses (defaults to the last 30 days).",
    tags=['couples'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def contribution_balance(request, account_id):
    """Get contribution balance."""
    params = DateRangeSerializer(data=request.query_params)
    params.is_valid(raise_exception=True)

    try:
        balance = get_contribution_balance(account_id=account_id, user=request.user, **params.validated_data)
    except CouplesServiceError as e:
        return error_response(e)

    return Response(ContributionBalanceSerializer(balance).data)


@extend_schema(
    request=DateRangeSerializer,
    responses={200: SettleResultSerializer},
    description="Mark the unsettled shared expenses of a period as settled.",
    tags=['couples'],
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def settle(request, account_id):
    """Settle shared expenses."""
    serializer = DateRangeSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        result = settle_shared_expenses(account_id=account_id, user=request.user, **serializer.validated_data)
    except CouplesServiceError as e:
        return error_response(e)

    return Response(SettleResultSerializer(result).data)


# ============================================================
# Premium
# ============================================================

@extend_schema(
    description="Subscription state of both partners and the resulting couple tier.",
    tags=['couples'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def subscription_status(request, account_id):
    """Get premium subscription status."""
    try:
        return Response(get_subscription_status(account_id=account_id, user=request.user))
    except CouplesServiceError as e:
        return error_response(e)


@extend_schema(
    parameters=[OpenApiParameter(name='feature', type=str, description='Single feature to check')],
    description="Availability of premium features for the couple.",
    tags=['couples'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def feature_status(request, account_id):
    """Get feature status, for one feature or all of them."""
    params = FeatureQuerySerializer(data=request.query_params)
    params.is_valid(raise_exception=True)
    feature = params.validated_data.get('feature')

    try:
        if feature:
            return Response(get_feature_status(account_id=account_id, user=request.user, feature=feature))
        return Response(get_all_feature_status(account_id=account_id, user=request.user))
    except CouplesServiceError as e:
        return error_response(e)


@extend_schema(
    request=None,
    responses={200: FeatureUsageResultSerializer},
    description="Record one use of a premium feature. Refused when disabled or over the monthly limit.",
    tags=['couples'],
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def feature_usage(request, account_id, feature):
    """Track premium feature usage."""
    try:
        result = track_feature_usage(account_id=account_id, user=request.user, feature=feature)
    except CouplesServiceError as e:
        return error_response(e)

    return Response(FeatureUsageResultSerializer(result).data)


# ============================================================
# Gifts
# ============================================================

@extend_schema(
    methods=['GET'],
    responses={200: GiftSerializer(many=True)},
    description="Gifts created by the current user.",
    tags=['couples'],
)
@extend_schema(
    methods=['POST'],
    request=GiftCreateSerializer,
    responses={201: GiftSerializer, 400: ErrorResponseSerializer, 403: ErrorResponseSerializer},
    description="Create a gift for the partner, hidden until the reveal date.",
    tags=['couples'],
)
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def gifts(request, account_id):
    """List my gifts or create a gift."""
    if request.method == 'GET':
        try:
            my_gifts = list_my_gifts(account_id=account_id, user=request.user)
        except CouplesServiceError as e:
            return error_response(e)
        return Response(GiftSerializer(my_gifts, many=True).data)

    serializer = GiftCreateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    try:
        gift = create_gift(
            account_id=account_id,
            user=request.user,
            gift_for_id=data['gift_for'],
            amount=data['amount'],
            description=data['description'],
            reveal_date=data['reveal_date'],
            category=data.get('category', ''),
            date=data.get('date'),
            reveal_message=data.get('reveal_message', ''),
        )
    except CouplesServiceError as e:
        return error_response(e)

    return Response(GiftSerializer(gift).data, status=status.HTTP_201_CREATED)


@extend_schema(
    responses={200: ReceivedGiftsResponseSerializer},
    description="Revealed gifts received by the current user, plus the number still hidden.",
    tags=['couples'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def received_gifts(request, account_id):
    """List received gifts."""
    try:
        received = list_received_gifts(account_id=account_id, user=request.user)
    except CouplesServiceError as e:
        return error_response(e)

    return Response({
        'gifts': GiftSerializer(received.revealed, many=True).data,
        'hidden_count': received.hidden_count,
    })


@extend_schema(
    methods=['PATCH'],
    request=GiftUpdateSerializer,
    responses={200: GiftSerializer},
    description="Update a gift that is still hidden (creator only).",
    tags=['couples'],
)
@extend_schema(
    methods=['DELETE'],
    responses={204: None},
    description="Delete a gift that is still hidden (creator only).",
    tags=['couples'],
)
@api_view(['PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def gift_detail(request, gift_id):
    """Update or delete a gift."""
    if request.method == 'DELETE':
        try:
            delete_gift(gift_id=gift_id, user=request.user)
        except CouplesServiceError as e:
            return error_response(e)
        return Response(status=status.HTTP_204_NO_CONTENT)

    serializer = GiftUpdateSerializer(data=request.data, partial=True)
    serializer.is_valid(raise_exception=True)

    try:
        gift = update_gift(gift_id=gift_id, user=request.user, **serializer.validated_data)
    except CouplesServiceError as e:
        return error_response(e)

    return Response(GiftSerializer(gift).data)


@extend_schema(
    request=GiftRevealSerializer,
    responses={200: GiftSerializer, 409: ErrorResponseSerializer},
    description="Reveal a gift early. With reveal_now it also becomes a shared expense.",
    tags=['couples'],
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def reveal(request, gift_id):
    """Reveal a gift."""
    serializer = GiftRevealSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        gift = reveal_gift(
            gift_id=gift_id,
            user=request.user,
            reveal_now=serializer.validated_data['reveal_now'],
            message=serializer.validated_data.get('message', ''),
        )
    except CouplesServiceError as e:
        return error_response(e)

    return Response(GiftSerializer(gift).data)


# ============================================================
# Comments and reactions
# ============================================================

@extend_schema(
    request=CommentCreateSerializer,
    responses={201: ExpenseCommentSerializer, 403: ErrorResponseSerializer},
    description="Comment on a couple expense.",
    tags=['couples'],
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def expense_comments(request, expense_id):
    """Add a comment."""
    serializer = CommentCreateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        comment = add_expense_comment(
            expense_id=expense_id,
            user=request.user,
            text=serializer.validated_data['text'],
        )
    except CouplesServiceError as e:
        return error_response(e)

    return Response(ExpenseCommentSerializer(comment).data, status=status.HTTP_201_CREATED)


@extend_schema(
    request=ReactionCreateSerializer,
    responses={201: ExpenseReactionSerializer, 403: ErrorResponseSerializer},
    description="React to a couple expense. Replaces the user's earlier reaction.",
    tags=['couples'],
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def expense_reactions(request, expense_id):
    """Add a reaction."""
    serializer = ReactionCreateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        reaction = add_expense_reaction(
            expense_id=expense_id,
            user=request.user,
            reaction_type=serializer.validated_data['type'],
        )
    except CouplesServiceError as e:
        return error_response(e)

    return Response(ExpenseReactionSerializer(reaction).data, status=status.HTTP_201_CREATED)


# ============================================================
# Context parsing
# ============================================================

@extend_schema(
    request=ParseContextSerializer,
    responses={200: ExpenseContextSerializer(many=True)},
    description="Extract routing keywords such as @pareja from expense descriptions.",
    tags=['couples'],
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def parse_context_view(request):
    """Parse expense context, single description or batch."""
    serializer = ParseContextSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    items = serializer.validated_data.get('items')
    if items is not None:
        results = batch_parse_expense_contexts(items=items, user=request.user)
        return Response(ExpenseContextSerializer(results, many=True).data)

    result = parse_expense_context(
        description=serializer.validated_data['description'],
        user=request.user,
    )
    return Response(ExpenseContextSerializer(result).data)


@extend_schema(
    request=SuggestContextSerializer,
    responses={200: ContextSuggestionSerializer(many=True)},
    description="Suggest which account an expense belongs to.",
    tags=['couples'],
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def suggest_context_view(request):
    """Suggest expense context."""
    serializer = SuggestContextSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    suggestions = suggest_context(
        description=serializer.validated_data['description'],
        amount=serializer.validated_data['amount'],
        user=request.user,
        category=serializer.validated_data.get('category'),
    )
    return Response(ContextSuggestionSerializer(suggestions, many=True).data)
