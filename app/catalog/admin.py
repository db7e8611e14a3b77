from django.contrib import admin

from catalog.models import Product, ProductVariant


class ProductVariantInline(admin.TabularInline):
    model = ProductVariant
    extra = 0
    fields = ["name", "sku", "attributes", "price", "is_active"]


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ["name", "vendor", "sku", "price", "is_active", "updated_at"]
    list_filter = ["is_active"]
    search_fields = ["name", "sku", "vendor__business_name"]
    raw_id_fields = ["vendor"]
    inlines = [ProductVariantInline]
