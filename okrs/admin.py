from django.contrib import admin
from .models import OKR


@admin.register(OKR)
class OKRAdmin(admin.ModelAdmin):
    list_display = ['title', 'owner', 'quarter', 'year', 'status', 'progress', 'created_at']
    list_filter = ['status', 'quarter', 'year']
    search_fields = ['title', 'objective', 'owner__email']
    readonly_fields = ['id', 'created_at', 'updated_at']
    date_hierarchy = 'created_at'

    fieldsets = (
        ('OKR Details', {
            'fields': ('id', 'owner', 'title', 'description', 'objective')
        }),
        ('Period', {
            'fields': ('quarter', 'year'),
            'description': 'Year must be between 2020 and 2030.'
        }),
        ('Progress', {
            'fields': ('status', 'progress', 'key_results'),
            'description': 'Status and progress are independent; completing an OKR does not set progress to 100.'
        }),
        ('Audit Information', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )
