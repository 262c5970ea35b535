from django.contrib import admin
from django.http import JsonResponse
from django.urls import path, include


def health_check(request):
    """Health check endpoint for load balancers and monitoring."""
    return JsonResponse({'status': 'healthy'})


urlpatterns = [
    path('admin/', admin.site.urls),
    path('health/', health_check, name='health_check'),
    path('academics/', include('academics.urls')),
    path('gradebook/', include('gradebook.urls')),
]
