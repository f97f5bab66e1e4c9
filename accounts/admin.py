from django.contrib import admin
from django.contrib.auth.admin import UserAdmin

from .forms import CustomUserCreationForm, CustomUserChangeForm
from .models import CustomUser


class CustomUserAdmin(UserAdmin):
    add_form = CustomUserCreationForm
    form = CustomUserChangeForm
    model = CustomUser
    list_display = [
        "email",
        "username",
        "role",
        "has_student_profile",
        "is_staff",
        "is_active",
    ]
    list_filter = ["role", "is_staff", "is_superuser", "is_active"]
    search_fields = ["email", "username", "student_profile__student_id"]
    fieldsets = UserAdmin.fieldsets + (
        ("Portal", {"fields": ("role", "phone")}),
    )
    add_fieldsets = UserAdmin.add_fieldsets + (
        ("Portal", {"fields": ("email", "role", "phone")}),
    )

    @admin.display(description="Student profile", boolean=True)
    def has_student_profile(self, obj: CustomUser) -> bool:
        return hasattr(obj, "student_profile")


admin.site.register(CustomUser, CustomUserAdmin)
