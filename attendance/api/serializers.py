from rest_framework import serializers

from attendance.models import AttendanceEvent

QUERY_DATETIME_FORMATS = ["iso-8601", "%Y-%m-%d"]


class AttendanceRecordSerializer(serializers.ModelSerializer):
    """Serializer for attendance events using the client's camelCase keys."""

    name = serializers.CharField(source="subject_name", read_only=True)
    email = serializers.EmailField(source="subject_email", read_only=True)
    image = serializers.CharField(source="captured_image", read_only=True)
    imagePath = serializers.CharField(source="stored_image_ref", read_only=True)
    type = serializers.CharField(source="kind", read_only=True)
    timestamp = serializers.DateTimeField(source="occurred_at", read_only=True)
    duration = serializers.IntegerField(source="duration_seconds", read_only=True)
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)
    updatedAt = serializers.DateTimeField(source="updated_at", read_only=True)

    class Meta:
        model = AttendanceEvent
        fields = [
            "id",
            "name",
            "email",
            "image",
            "imagePath",
            "type",
            "timestamp",
            "duration",
            "createdAt",
            "updatedAt",
        ]

    def to_representation(self, instance):
        data = super().to_representation(instance)
        record = {"_id": str(data.pop("id"))}
        record.update(data)
        if record.get("duration") is None:
            record.pop("duration", None)
        return record


class SessionSerializer(serializers.Serializer):
    """A check-in with its matching check-out, if any."""

    entry = AttendanceRecordSerializer(read_only=True)
    exit = AttendanceRecordSerializer(read_only=True)
    duration = serializers.IntegerField(read_only=True)

    def to_representation(self, instance):
        data = {"entry": AttendanceRecordSerializer(instance.entry).data}
        if instance.exit is not None:
            data["exit"] = AttendanceRecordSerializer(instance.exit).data
        if instance.duration is not None:
            data["duration"] = instance.duration
        return data


class StatsSerializer(serializers.Serializer):
    """Serializer for attendance statistics."""

    totalEntries = serializers.IntegerField(source="total_entries")
    totalExits = serializers.IntegerField(source="total_exits")
    distinctSubjects = serializers.IntegerField(source="distinct_subjects")
    averageDurationSeconds = serializers.FloatField(source="average_duration_seconds")


class AttendanceRequestSerializer(serializers.Serializer):
    """Validate a check-in or check-out submission."""

    name = serializers.CharField(trim_whitespace=True)
    email = serializers.EmailField()
    image = serializers.CharField(trim_whitespace=False)
    type = serializers.ChoiceField(choices=AttendanceEvent.Kind.choices)


class VerifyRequestSerializer(serializers.Serializer):
    """Validate an identity check submission."""

    email = serializers.EmailField()
    image = serializers.CharField(trim_whitespace=False)


class HistoryQuerySerializer(serializers.Serializer):
    """Parse the history filters from the query string."""

    email = serializers.EmailField(required=False)
    type = serializers.ChoiceField(choices=AttendanceEvent.Kind.choices, required=False)
    startDate = serializers.DateTimeField(required=False, input_formats=QUERY_DATETIME_FORMATS)
    endDate = serializers.DateTimeField(required=False, input_formats=QUERY_DATETIME_FORMATS)
