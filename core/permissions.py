from rest_framework.permissions import SAFE_METHODS, BasePermission


class IsOwnAthleteOrReadOnly(BasePermission):
    """
    Cualquier usuario autenticado puede leer un perfil de atleta;
    solo el dueño (Athlete.user) puede modificarlo.
    """

    message = "You can only update your own profile"

    def has_object_permission(self, request, view, obj) -> bool:
        if request.method in SAFE_METHODS:
            return True
        user = getattr(request, "user", None)
        if not user or not user.is_authenticated:
            return False
        return obj.user_id == user.pk
