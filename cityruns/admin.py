from django.contrib import admin

from .models import CityRun, CityRunRSVP


class CityRunRSVPInline(admin.TabularInline):
    model = CityRunRSVP
    extra = 0
    raw_id_fields = ('athlete',)


@admin.register(CityRun)
class CityRunAdmin(admin.ModelAdmin):
    list_display = ('title', 'city_slug', 'is_recurring', 'day_of_week', 'start_date', 'meet_up_point')
    list_filter = ('city_slug', 'is_recurring', 'day_of_week')
    search_fields = ('title', 'slug', 'meet_up_point', 'meet_up_city')
    prepopulated_fields = {'slug': ('title',)}
    raw_id_fields = ('created_by',)
    inlines = [CityRunRSVPInline]
