from django.contrib import admin
from .models import Event, Team, TeamMember, JoinRequest, TeamEventRegistration, TeamInvitation


@admin.register(Event)
class EventAdmin(admin.ModelAdmin):
    list_display = ('name', 'event_type', 'start_date', 'end_date', 'is_active')
    list_filter = ('event_type', 'is_active', 'start_date')
    search_fields = ('name', 'description', 'location')
    date_hierarchy = 'start_date'


class TeamMemberInline(admin.TabularInline):
    model = TeamMember
    extra = 0
    fields = ('user', 'role', 'is_active', 'joined_at')
    readonly_fields = ('joined_at',)


@admin.register(Team)
class TeamAdmin(admin.ModelAdmin):
    list_display = ('name', 'event', 'owner', 'max_members', 'is_active', 'created_at')
    list_filter = ('is_active', 'event')
    search_fields = ('name', 'description', 'owner__username', 'event__name')
    inlines = [TeamMemberInline]


@admin.register(TeamMember)
class TeamMemberAdmin(admin.ModelAdmin):
    list_display = ('user', 'team', 'role', 'is_active', 'joined_at')
    list_filter = ('role', 'is_active')
    search_fields = ('user__username', 'team__name')


@admin.register(JoinRequest)
class JoinRequestAdmin(admin.ModelAdmin):
    list_display = ('user', 'team', 'status', 'created_at')
    list_filter = ('status', 'created_at')
    search_fields = ('user__username', 'team__name')


@admin.register(TeamInvitation)
class TeamInvitationAdmin(admin.ModelAdmin):
    list_display = ('team', 'inviter', 'invitee', 'status', 'expires_at', 'responded_at')
    list_filter = ('status', 'expires_at')
    search_fields = ('team__name', 'inviter__username', 'invitee__username')


@admin.register(TeamEventRegistration)
class TeamEventRegistrationAdmin(admin.ModelAdmin):
    list_display = ('team', 'event', 'status', 'registered_by', 'reviewed_at', 'created_at')
    list_filter = ('status', 'event')
    search_fields = ('team__name', 'event__name')
