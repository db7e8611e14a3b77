"""Django admin configuration for chat rooms."""

from django.contrib import admin

from chat.models import ChatRoom


@admin.register(ChatRoom)
class ChatRoomAdmin(admin.ModelAdmin):
    list_display = ["id", "order_item", "customer", "vendor", "is_active", "created_at"]
    list_filter = ["is_active"]
    search_fields = ["customer__email", "vendor__business_name"]
    raw_id_fields = ["order_item", "customer", "vendor"]
    readonly_fields = ["created_at", "updated_at"]
