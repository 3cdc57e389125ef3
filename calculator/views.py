import json
import logging

from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from .exceptions import InvalidInput
from .forms import BudgetForm
from .services.build_calculator import optimize

logger = logging.getLogger(__name__)


def _request_data(request):
    """Form fields, or a JSON object body when sent as application/json."""
    if request.content_type == "application/json":
        try:
            data = json.loads(request.body or b"{}")
        except (ValueError, UnicodeDecodeError):
            return None
        return data if isinstance(data, dict) else None
    return request.POST


@csrf_exempt
@require_POST
def calculate_build(request):
    """Validate budget + region, run the allocator, return the build as JSON."""
    data = _request_data(request)
    if data is None:
        return JsonResponse({"error": "Request body must be a JSON object"}, status=400)

    form = BudgetForm(data)
    if not form.is_valid():
        return JsonResponse({"error": "Invalid input", "fields": form.errors.get_json_data()}, status=400)

    try:
        result = optimize(form.cleaned_data["budget"], form.cleaned_data["region"])
    except InvalidInput as exc:
        logger.info("Rejected build request: %s", exc)
        return JsonResponse({"error": str(exc)}, status=400)

    return JsonResponse(result.as_dict())
