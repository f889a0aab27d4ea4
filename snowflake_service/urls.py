from django.urls import path

from idgen import views

urlpatterns = [
    path('ids/', views.generate, name='generate'),
    path('ids/<int:snowflake_id>/', views.parse, name='parse'),
]
