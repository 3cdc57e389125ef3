from django.contrib import admin
from .models import PSU, CPU, GPU, Motherboard, RAM, Storage, CPUCooler, Case

PART_COLUMNS = ("brand", "name", "price", "availability", "slug")


@admin.register(PSU)
class PSUAdmin(admin.ModelAdmin):
    list_display = PART_COLUMNS + ("wattage", "efficiency")
    list_filter = ("brand", "availability", "efficiency")


@admin.register(CPU)
class CPUAdmin(admin.ModelAdmin):
    list_display = PART_COLUMNS + ("socket", "core_count", "boost_clock", "tdp")
    list_filter = ("brand", "availability", "socket")


@admin.register(GPU)
class GPUAdmin(admin.ModelAdmin):
    list_display = PART_COLUMNS + ("tdp", "board_length", "memory_size_gb")
    list_filter = ("brand", "availability")


@admin.register(Motherboard)
class MotherboardAdmin(admin.ModelAdmin):
    list_display = PART_COLUMNS + ("socket", "form_factor", "ddr_version")
    list_filter = ("availability", "socket", "form_factor", "ddr_version")


@admin.register(RAM)
class RAMAdmin(admin.ModelAdmin):
    list_display = PART_COLUMNS + ("capacity_gb", "ddr_generation", "frequency_mhz")
    list_filter = ("availability", "ddr_generation", "frequency_mhz")


@admin.register(Storage)
class StorageAdmin(admin.ModelAdmin):
    list_display = PART_COLUMNS + ("capacity", "interface")
    list_filter = ("brand", "availability", "interface")


@admin.register(CPUCooler)
class CPUCoolerAdmin(admin.ModelAdmin):
    list_display = PART_COLUMNS + ("cooler_type", "height")
    list_filter = ("availability", "cooler_type")


@admin.register(Case)
class CaseAdmin(admin.ModelAdmin):
    list_display = PART_COLUMNS + ("case_type", "gpu_clearance", "cooler_clearance")
    list_filter = ("availability", "case_type")
