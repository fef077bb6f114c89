from rest_framework.permissions import BasePermission, SAFE_METHODS

from .models import PlanType, UserRole


def is_admin(user):
    return bool(user and user.is_authenticated and getattr(user, "role", None) == UserRole.ADMIN)


class IsAdminRole(BasePermission):
    """
    Allows access only to users with the 'admin' role.
    """
    message = "Admin access required"

    def has_permission(self, request, view):
        return is_admin(request.user)


class IsAdminOrReadOnly(BasePermission):
    """
    Anyone can read (GET, HEAD, OPTIONS).
    Only admins can create, update or delete.
    """

    def has_permission(self, request, view):
        if request.method in SAFE_METHODS:
            return True
        return is_admin(request.user)


class IsOwnerOrAdmin(BasePermission):
    """
    Object-level check: the object's owner (obj.user_id) or an admin.
    """
    message = "You do not have permission to modify this resource"

    def has_object_permission(self, request, view, obj):
        if is_admin(request.user):
            return True
        return getattr(obj, "user_id", None) == request.user.pk


class HasPaidPlan(BasePermission):
    """
    Custom domains and other paid features require a plan above free.
    """
    message = "Custom domains are only available on paid plans"

    def has_permission(self, request, view):
        user = request.user
        if not (user and user.is_authenticated):
            return False
        return user.subscription_tier != PlanType.FREE
