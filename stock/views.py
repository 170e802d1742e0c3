from django.conf import settings
from django.http import JsonResponse
from django.views import View
from django.views.decorators.csrf import csrf_exempt
from django.utils.decorators import method_decorator
from django.utils.dateparse import parse_date
import json

from stock.services import (
    ServiceError, InvalidArgumentError, NotFoundError,
    UnitService, StockLedgerService, SectorService, IngredientService,
    StockMovementService, StockDeductionService,
)


def error_response(message: str, code: str = "error", status: int = 400, details: dict = None):
    data = {"success": False, "error": {"code": code, "message": message}}
    if details:
        data["error"]["details"] = details
    return JsonResponse(data, status=status)


def handle_service_error(e: ServiceError):
    if isinstance(e, InvalidArgumentError):
        return error_response(e.message, "validation_error", 400, {"field": e.field})
    elif isinstance(e, NotFoundError):
        return error_response(e.message, "not_found", 404)
    return error_response(e.message, e.code.lower(), 400, e.details)


def result_response(result: dict, status: int = 200):
    """Turn a movement engine result dict into a response."""
    if result.get("success"):
        return JsonResponse(result, status=status)
    code = result.get("error_code", "ERROR")
    return error_response(
        result.get("message", "Operation failed"),
        code.lower(),
        404 if code == "NOT_FOUND" else 400,
        result.get("details"),
    )


class BaseStockView(View):
    @method_decorator(csrf_exempt)
    def dispatch(self, request, *args, **kwargs):
        return super().dispatch(request, *args, **kwargs)

    def get_json_body(self, request):
        try:
            return json.loads(request.body) if request.body else {}
        except json.JSONDecodeError:
            return {}

    def get_tenant_id(self, request):
        return request.META.get(settings.TENANT_HEADER) or settings.STOCK_DEFAULT_TENANT

    def success(self, data: dict, status: int = 200):
        return JsonResponse({"success": True, **data}, status=status)


# ==================== UNITS ====================

class UnitListView(BaseStockView):

    def get(self, request):
        return self.success(UnitService.list_units())


# ==================== SECTORS ====================

class SectorListView(BaseStockView):

    def get(self, request):
        try:
            include_balances = request.GET.get("balances", "true").lower() == "true"
            result = SectorService.list(self.get_tenant_id(request), include_balances=include_balances)
            return self.success(result)
        except ServiceError as e:
            return handle_service_error(e)

    def post(self, request):
        try:
            data = self.get_json_body(request)
            result = SectorService.create(
                self.get_tenant_id(request),
                name=data.get("name"),
                description=data.get("description", ""),
                is_central=bool(data.get("is_central", False)),
            )
            return self.success(result, 201)
        except ServiceError as e:
            return handle_service_error(e)


class SectorDetailView(BaseStockView):

    def get(self, request, sector_id):
        try:
            return self.success(SectorService.get(self.get_tenant_id(request), sector_id))
        except ServiceError as e:
            return handle_service_error(e)

    def put(self, request, sector_id):
        try:
            data = self.get_json_body(request)
            fields = {k: v for k, v in data.items() if k in ("name", "description")}
            result = SectorService.update(self.get_tenant_id(request), sector_id, **fields)
            return self.success(result)
        except ServiceError as e:
            return handle_service_error(e)

    def delete(self, request, sector_id):
        try:
            return self.success(SectorService.delete(self.get_tenant_id(request), sector_id))
        except ServiceError as e:
            return handle_service_error(e)


# ==================== INGREDIENTS ====================

class IngredientListView(BaseStockView):

    def get(self, request):
        try:
            category_id = request.GET.get("category_id")
            result = IngredientService.list(
                self.get_tenant_id(request),
                search=request.GET.get("search"),
                category_id=int(category_id) if category_id else None,
                include_inactive=request.GET.get("include_inactive", "false").lower() == "true",
            )
            return self.success(result)
        except ValueError:
            return error_response("category_id must be an integer", "validation_error", 400)
        except ServiceError as e:
            return handle_service_error(e)

    def post(self, request):
        try:
            data = self.get_json_body(request)
            result = IngredientService.create(
                self.get_tenant_id(request),
                name=data.get("name"),
                unit=data.get("unit", "un"),
                cost_price=data.get("cost_price", 0),
                min_stock=data.get("min_stock", 0),
                category_id=data.get("category_id"),
                category_name=data.get("category"),
            )
            return self.success(result, 201)
        except ServiceError as e:
            return handle_service_error(e)


class IngredientDetailView(BaseStockView):

    def get(self, request, ingredient_id):
        try:
            return self.success(IngredientService.get(self.get_tenant_id(request), ingredient_id))
        except ServiceError as e:
            return handle_service_error(e)

    def put(self, request, ingredient_id):
        try:
            data = self.get_json_body(request)
            fields = {k: v for k, v in data.items() if k in ("name", "cost_price", "min_stock")}
            result = IngredientService.update(self.get_tenant_id(request), ingredient_id, **fields)
            return self.success(result)
        except ServiceError as e:
            return handle_service_error(e)

    def delete(self, request, ingredient_id):
        try:
            return self.success(IngredientService.deactivate(self.get_tenant_id(request), ingredient_id))
        except ServiceError as e:
            return handle_service_error(e)


class IngredientBalanceView(BaseStockView):

    def get(self, request, ingredient_id):
        try:
            result = StockLedgerService.get_for_ingredient(self.get_tenant_id(request), ingredient_id)
            return self.success(result)
        except ServiceError as e:
            return handle_service_error(e)


# ==================== MOVEMENTS ====================

class TransferView(BaseStockView):

    def post(self, request):
        data = self.get_json_body(request)
        result = StockMovementService.transfer(
            self.get_tenant_id(request),
            ingredient_id=data.get("ingredient_id"),
            from_sector_id=data.get("from_sector_id"),
            to_sector_id=data.get("to_sector_id"),
            quantity=data.get("quantity"),
            reason=data.get("reason"),
        )
        return result_response(result, 201)


class EntryView(BaseStockView):

    def post(self, request):
        data = self.get_json_body(request)
        result = StockMovementService.register_entry(
            self.get_tenant_id(request),
            ingredient_id=data.get("ingredient_id"),
            sector_id=data.get("sector_id"),
            quantity=data.get("quantity"),
            reason=data.get("reason"),
        )
        return result_response(result, 201)


class AdjustmentView(BaseStockView):

    def post(self, request):
        data = self.get_json_body(request)
        result = StockMovementService.register_adjustment(
            self.get_tenant_id(request),
            ingredient_id=data.get("ingredient_id"),
            sector_id=data.get("sector_id"),
            new_quantity=data.get("new_quantity"),
            reason=data.get("reason", ""),
        )
        return result_response(result)


class MovementListView(BaseStockView):

    def get(self, request):
        try:
            ingredient_id = request.GET.get("ingredient_id")
            result = StockLedgerService.list_movements(
                self.get_tenant_id(request),
                ingredient_id=int(ingredient_id) if ingredient_id else None,
                movement_type=request.GET.get("type"),
                date_from=parse_date(request.GET.get("date_from", "")),
                date_to=parse_date(request.GET.get("date_to", "")),
                limit=int(request.GET.get("limit", 50)),
            )
            return self.success(result)
        except ValueError:
            return error_response("Invalid query parameter", "validation_error", 400)
        except ServiceError as e:
            return handle_service_error(e)


# ==================== REPORTS ====================

class CriticalStockView(BaseStockView):

    def get(self, request):
        critical = StockDeductionService.get_critical_stock(self.get_tenant_id(request))
        return self.success({"items": critical, "count": len(critical)})
