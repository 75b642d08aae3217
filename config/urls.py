from django.contrib import admin
from django.urls import path, include
from django.http import HttpResponse


def health_view(request):
    return HttpResponse("<h1>Citizenly RBI API</h1><p>Backend is running.</p>")


urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/', include('apps.accounts.urls')),
    path('api/jurisdictions/', include('apps.jurisdictions.urls')),
    path('health/', health_view, name='health'),
    path('', health_view),
]
