from rest_framework import serializers

from exam_seating.models import AntiCheatLevel, ExamSession, ImportLog


class ImportOptionsSerializer(serializers.Serializer):
    auto_generate = serializers.BooleanField(required=False, default=False)
    anti_cheat_level = serializers.ChoiceField(
        choices=AntiCheatLevel.choices,
        required=False,
        default=AntiCheatLevel.BASIC,
    )


class GenerateSeatingSerializer(serializers.Serializer):
    anti_cheat_level = serializers.ChoiceField(
        choices=AntiCheatLevel.choices,
        required=False,
        default=AntiCheatLevel.BASIC,
    )


class ExamSessionSerializer(serializers.ModelSerializer):
    subject_code = serializers.CharField(source="subject.code", read_only=True)
    subject_name = serializers.CharField(source="subject.name", read_only=True)
    room_number = serializers.CharField(source="room.room_number", read_only=True)
    room_capacity = serializers.IntegerField(source="room.capacity", read_only=True)
    start_time = serializers.TimeField(format="%H:%M", read_only=True)
    end_time = serializers.TimeField(format="%H:%M", read_only=True)

    class Meta:
        model = ExamSession
        fields = (
            "id",
            "subject_code",
            "subject_name",
            "room_number",
            "room_capacity",
            "exam_date",
            "start_time",
            "end_time",
            "duration_minutes",
        )


class ImportLogSerializer(serializers.ModelSerializer):
    uploaded_by = serializers.SerializerMethodField()

    class Meta:
        model = ImportLog
        fields = (
            "id",
            "file_name",
            "uploaded_by",
            "uploaded_at",
            "status",
            "sessions_imported",
            "rows_skipped",
            "message",
            "last_session",
        )

    def get_uploaded_by(self, obj):
        return str(obj.uploaded_by) if obj.uploaded_by else None
