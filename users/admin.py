from django.contrib import admin
from django.contrib.auth.admin import UserAdmin
from .models import User, Profile


@admin.register(User)
class CustomUserAdmin(UserAdmin):
    list_display = ('username', 'email', 'name', 'role', 'is_active', 'is_deleted', 'created_at')
    list_filter = ('role', 'is_staff', 'is_superuser', 'is_active', 'is_deleted')
    search_fields = ('username', 'email', 'name')
    fieldsets = UserAdmin.fieldsets + (
        ('Custom Fields', {'fields': ('name', 'role', 'is_deleted', 'deleted_at')}),
    )
    add_fieldsets = UserAdmin.add_fieldsets + (
        ('Custom Fields', {'fields': ('name', 'email', 'role')}),
    )


@admin.register(Profile)
class ProfileAdmin(admin.ModelAdmin):
    list_display = ('user', 'display_name', 'role', 'location', 'is_available', 'rating')
    list_filter = ('is_available',)
    search_fields = ('user__username', 'user__email', 'display_name')
