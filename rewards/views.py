from django.http import JsonResponse
from django.views.decorators.http import require_GET

from .services import PackageCatalog, get_balance


def _package_dict(pkg) -> dict:
    return {
        "id": pkg.pk,
        "name": pkg.name,
        "description": pkg.description,
        "coins": pkg.coins,
        "bonus_coins": pkg.bonus_coins,
        "total_coins": pkg.total_coins,
        "price_inr": pkg.price_inr,
        "is_popular": pkg.is_popular,
    }


@require_GET
def packages_view(request):
    """Active coin packages in display order."""
    packages = PackageCatalog().list_active()
    return JsonResponse({"success": True, "packages": [_package_dict(p) for p in packages]})


@require_GET
def balance_view(request):
    if not request.user.is_authenticated:
        return JsonResponse({"success": False, "error": "Unauthorized"}, status=401)
    return JsonResponse({"success": True, "coins": get_balance(request.user.pk)})
