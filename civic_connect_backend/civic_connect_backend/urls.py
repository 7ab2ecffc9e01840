from django.contrib import admin
from django.urls import path, include
from django.http import JsonResponse


def api_index(request):
    return JsonResponse({
        "message": "Welcome to Civic Connect API",
        "endpoints": {
            "auth": "/api/auth/",
            "reports": "/api/reports/",
            "analytics": "/api/analytics/",
        }
    })


urlpatterns = [
    path('admin/', admin.site.urls),

    # JSON API
    path('api/', api_index, name='api-index'),
    path('api/auth/', include('users.urls')),
    path('api/', include('reports.urls')),
    path('api/analytics/', include('analytics.urls')),

    # Pages
    path('', include('users.page_urls')),
    path('', include('reports.page_urls')),
    path('', include('dashboard.urls')),
]
