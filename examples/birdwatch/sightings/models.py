from django.db import models
from django.utils import timezone


class Bird(models.Model):
    """
    A bird species that can be sighted
    """
    name = models.CharField(max_length=100)
    species = models.CharField(max_length=100, help_text="Latin name of the species")
    color = models.CharField(max_length=50, blank=True)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name} ({self.species})"


class Location(models.Model):
    """
    A place where birds are sighted
    """
    latitude = models.FloatField()
    longitude = models.FloatField()
    country = models.CharField(max_length=2, help_text="ISO 3166-1 alpha-2 country code")
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.latitude}, {self.longitude} ({self.country})"


class Sighting(models.Model):
    """
    Observation of a bird at a location
    """
    bird = models.ForeignKey(Bird, on_delete=models.CASCADE, related_name='sightings')
    location = models.ForeignKey(Location, on_delete=models.CASCADE, related_name='sightings')
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ('id',)

    def __str__(self):
        return f"{self.bird.name} at {self.location}"

    @property
    def summary(self):
        return f"{self.bird.name} sighted in {self.location.country}"
