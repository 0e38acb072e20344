"""
URL patterns for the catalog REST API.

Endpoints:
- POST   /api/v1/processing/start/                  - Start a processing run
- POST   /api/v1/processing/resume/                 - Run the recovery supervisor
- GET    /api/v1/processing/queues/                 - List processing runs
- GET    /api/v1/processing/queues/<id>/            - Processing run detail
- GET    /api/v1/processing/recovery-log/           - Recovery log
- POST   /api/v1/equivalences/analyze/              - Analyze equivalences
- GET    /api/v1/equivalences/brands/               - Brand equivalences
- GET    /api/v1/equivalences/models/               - Model equivalences
- POST   /api/v1/equivalences/<kind>/<id>/toggle/   - Toggle an equivalence
- DELETE /api/v1/equivalences/<kind>/<id>/          - Delete an equivalence
- POST   /api/v1/vehicle-years/match/               - Match vehicle years
"""

from django.urls import path

from catalog.api import views

app_name = 'catalog_api'

urlpatterns = [
    # Processing
    path('processing/start/', views.start_processing, name='start_processing'),
    path('processing/resume/', views.resume_processing, name='resume_processing'),
    path('processing/queues/', views.list_queues, name='list_queues'),
    path('processing/queues/<uuid:queue_id>/', views.get_queue, name='get_queue'),
    path('processing/recovery-log/', views.list_recovery_log, name='list_recovery_log'),

    # Equivalences
    path('equivalences/analyze/', views.analyze_equivalences, name='analyze_equivalences'),
    path('equivalences/brands/', views.list_brand_equivalences, name='list_brand_equivalences'),
    path('equivalences/models/', views.list_model_equivalences, name='list_model_equivalences'),
    path('equivalences/<str:kind>/<int:pk>/toggle/', views.toggle_equivalence, name='toggle_equivalence'),
    path('equivalences/<str:kind>/<int:pk>/', views.delete_equivalence, name='delete_equivalence'),

    # Vehicle years
    path('vehicle-years/match/', views.match_vehicle_years, name='match_vehicle_years'),
]
