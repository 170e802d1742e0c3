from django.urls import path
from . import views

app_name = "stock"

urlpatterns = [
    path("units/", views.UnitListView.as_view(), name="unit-list"),

    path("sectors/", views.SectorListView.as_view(), name="sector-list"),
    path("sectors/<int:sector_id>/", views.SectorDetailView.as_view(), name="sector-detail"),

    path("ingredients/", views.IngredientListView.as_view(), name="ingredient-list"),
    path("ingredients/<int:ingredient_id>/", views.IngredientDetailView.as_view(), name="ingredient-detail"),
    path("ingredients/<int:ingredient_id>/balances/", views.IngredientBalanceView.as_view(), name="ingredient-balances"),

    path("transfer/", views.TransferView.as_view(), name="transfer"),
    path("entry/", views.EntryView.as_view(), name="entry"),
    path("adjustment/", views.AdjustmentView.as_view(), name="adjustment"),
    path("movements/", views.MovementListView.as_view(), name="movement-list"),

    path("critical/", views.CriticalStockView.as_view(), name="critical"),
]
