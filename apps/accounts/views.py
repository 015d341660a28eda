from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema, OpenApiParameter
from .serializers import UserSerializer, AccountSerializer, AccountFilterSerializer
from .services import get_user_accounts


@extend_schema(
    responses={200: UserSerializer},
    description="Get the current user's profile and subscription state.",
    tags=['auth'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def get_current_user(request):
    """Get current authenticated user profile."""
    return Response(UserSerializer(request.user).data)


@extend_schema(
    parameters=[OpenApiParameter(name='type', type=str, description='Filter by account type')],
    responses={200: AccountSerializer(many=True)},
    description="Accounts the current user owns or belongs to, most recently active first.",
    tags=['accounts'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_accounts(request):
    """List current user's accounts."""
    params = AccountFilterSerializer(data=request.query_params)
    params.is_valid(raise_exception=True)

    accounts = get_user_accounts(
        user=request.user,
        account_type=params.validated_data.get('type'),
    )
    return Response(AccountSerializer(accounts, many=True).data)
