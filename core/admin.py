from django.contrib import admin
from .models import DomainActivity


@admin.register(DomainActivity)
class DomainActivityAdmin(admin.ModelAdmin):
    list_display = ('verb', 'actor', 'content_type', 'object_id', 'visibility', 'timestamp')
    list_filter = ('verb', 'visibility', 'timestamp')
    search_fields = ('verb', 'actor__username', 'actor__email')
    readonly_fields = ('actor', 'verb', 'content_type', 'object_id', 'metadata', 'timestamp')
