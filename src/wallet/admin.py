"""Django admin configuration for wallet pass models."""

from django.contrib import admin
from unfold.admin import ModelAdmin

from wallet.models import WalletPass, WalletPassLog, WalletPassRegistration


@admin.register(WalletPass)
class WalletPassAdmin(ModelAdmin):  # type: ignore[misc]
    """Admin for wallet passes."""

    list_display = ["serial_number", "pass_type_identifier", "template_type", "version_updated_at", "created_at"]
    list_filter = ["template_type", "pass_type_identifier", "created_at"]
    search_fields = ["serial_number", "pass_type_identifier", "created_by"]
    readonly_fields = ["version_updated_at", "created_at", "updated_at"]
    ordering = ["-version_updated_at"]


@admin.register(WalletPassRegistration)
class WalletPassRegistrationAdmin(ModelAdmin):  # type: ignore[misc]
    """Admin for wallet pass registrations."""

    list_display = ["serial_number", "pass_type_identifier", "device_short", "registered_at", "last_notified_at"]
    list_filter = ["pass_type_identifier", "registered_at"]
    search_fields = ["device_library_identifier", "serial_number", "push_token"]
    readonly_fields = ["registered_at", "last_notified_at", "created_at", "updated_at"]
    ordering = ["-registered_at"]

    @admin.display(description="Device")
    def device_short(self, obj: WalletPassRegistration) -> str:
        """Show truncated device ID."""
        return f"{obj.device_library_identifier[:12]}..."


@admin.register(WalletPassLog)
class WalletPassLogAdmin(ModelAdmin):  # type: ignore[misc]
    """Admin for wallet pass logs."""

    list_display = ["level", "message_short", "device_short", "serial_number", "created_at"]
    list_filter = ["level", "created_at"]
    search_fields = ["device_library_identifier", "serial_number", "message"]
    readonly_fields = [
        "device_library_identifier",
        "message",
        "level",
        "pass_type_identifier",
        "serial_number",
        "context",
        "created_at",
        "updated_at",
    ]
    ordering = ["-created_at"]

    @admin.display(description="Message")
    def message_short(self, obj: WalletPassLog) -> str:
        """Show the first line of the message."""
        return obj.message.splitlines()[0][:80] if obj.message else "-"

    @admin.display(description="Device")
    def device_short(self, obj: WalletPassLog) -> str:
        """Show truncated device ID."""
        return f"{obj.device_library_identifier[:12]}..."

    def has_add_permission(self, request: object) -> bool:
        """Prevent manual creation of logs."""
        return False

    def has_change_permission(self, request: object, obj: object = None) -> bool:
        """Prevent modification of logs."""
        return False
