from django.urls import path
from main.views import order_views, appointment_views, catalog_views


app_name = 'main'


urlpatterns = [
    path('orders/create', order_views.create_order, name='create_order'),
    path('orders/<int:order_id>', order_views.get_order, name='get_order'),
    path('orders/<int:order_id>/status', order_views.update_order_status, name='update_order_status'),
    path('orders/<int:order_id>/cancel', order_views.cancel_order, name='cancel_order'),

    path('appointments/create', appointment_views.create_appointment, name='create_appointment'),
    path('appointments/<int:appointment_id>', appointment_views.get_appointment, name='get_appointment'),
    path('appointments/<int:appointment_id>/status', appointment_views.update_appointment_status, name='update_appointment_status'),

    path('products/create', catalog_views.create_product, name='create_product'),
    path('products/<int:product_id>/recipe', catalog_views.set_recipe_line, name='set_recipe_line'),
    path('products/<int:product_id>/recipe/<int:ingredient_id>', catalog_views.remove_recipe_line, name='remove_recipe_line'),
    path('services/create', catalog_views.create_service, name='create_service'),
    path('services/<int:service_id>/requirements', catalog_views.set_requirement_line, name='set_requirement_line'),
]
