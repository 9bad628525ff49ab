from django.contrib import admin
from .models import Swipe, Match


@admin.register(Swipe)
class SwipeAdmin(admin.ModelAdmin):
    list_display = ('swiper', 'swipee', 'decision', 'created_at')
    list_filter = ('decision', 'created_at')
    search_fields = ('swiper__username', 'swipee__username')


@admin.register(Match)
class MatchAdmin(admin.ModelAdmin):
    list_display = ('user_a', 'user_b', 'is_active', 'created_at', 'ended_at')
    list_filter = ('is_active', 'created_at')
    search_fields = ('user_a__username', 'user_b__username')
