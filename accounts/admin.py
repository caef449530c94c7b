from django.contrib import admin
from .models import Profile


@admin.register(Profile)
class ProfileAdmin(admin.ModelAdmin):
    list_display = ['email', 'first_name', 'last_name', 'created_at']
    search_fields = ['email', 'first_name', 'last_name']
    readonly_fields = ['user', 'created_at', 'updated_at']

    fieldsets = (
        ('Profile', {
            'fields': ('user', 'email', 'first_name', 'last_name')
        }),
        ('Audit Information', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def has_add_permission(self, request):
        # Profiles are created by the user-creation signal only
        return False
