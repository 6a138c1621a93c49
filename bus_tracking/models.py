from django.db import models


class Bus(models.Model):
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('inactive', 'Inactive'),
        ('maintenance', 'Maintenance'),
    ]
    DIRECTION_CHOICES = [
        ('Juja-Nairobi', 'Juja → Nairobi'),
        ('Nairobi-Juja', 'Nairobi → Juja'),
    ]
    bus_number = models.CharField(max_length=50, unique=True)
    direction = models.CharField(max_length=32, choices=DIRECTION_CHOICES, blank=True, default='')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='inactive')
    current_lat = models.FloatField(null=True, blank=True)
    current_lng = models.FloatField(null=True, blank=True)
    position_updated_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['id']
        verbose_name_plural = 'buses'

    def __str__(self):
        return self.bus_number
