from django.contrib import admin

from .models import Bird, Location, Sighting


@admin.register(Bird)
class BirdAdmin(admin.ModelAdmin):
    list_display = ('name', 'species', 'color')
    search_fields = ('name', 'species')
    ordering = ('name',)

@admin.register(Location)
class LocationAdmin(admin.ModelAdmin):
    list_display = ('latitude', 'longitude', 'country')
    search_fields = ('country',)
    ordering = ('country',)

@admin.register(Sighting)
class SightingAdmin(admin.ModelAdmin):
    list_display = ('bird', 'location', 'created_at')
    list_select_related = ('bird', 'location')
    ordering = ('-created_at',)
