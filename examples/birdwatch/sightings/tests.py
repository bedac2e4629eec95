from datetime import datetime, timezone
from io import StringIO
from unittest import mock

from django.apps import apps
from django.core.exceptions import ImproperlyConfigured
from django.core.management import call_command
from django.test import SimpleTestCase, TestCase, override_settings
from rest_framework.test import APIClient

from field_projection import ProjectionSpec, UnknownFieldError, UnknownRelationError, project, shape_for_model
from field_projection import shapes
from field_projection.serializers import ProjectedModelSerializer, ProjectionSerializerMeta, validate_registered
from .models import Bird, Location, Sighting
from .serializers import SightingSerializer
from .views import SightingViewSet

CREATED_AT = datetime(2019, 5, 14, 14, 56, 35, 978000, tzinfo=timezone.utc)

EXPECTED_SIGHTING = {
    'id': 2,
    'bird_id': 2,
    'location_id': 2,
    'created_at': '2019-05-14T14:56:35.978Z',
    'bird': {'name': 'Grackle', 'species': 'Quiscalus Quiscula'},
    'location': {'latitude': 30.26715, 'longitude': -97.74306},
}


class BirdwatchTestCase(TestCase):

    def setUp(self):
        Bird.objects.bulk_create([
            Bird(id=1, name='Northern Cardinal', species='Cardinalis Cardinalis', color='red'),
            Bird(id=2, name='Grackle', species='Quiscalus Quiscula', color='black'),
        ])
        Location.objects.bulk_create([
            Location(id=1, latitude=45.50169, longitude=-73.56726, country='CA'),
            Location(id=2, latitude=30.26715, longitude=-97.74306, country='US'),
        ])
        Sighting.objects.bulk_create([
            Sighting(id=1, bird_id=1, location_id=1, created_at=CREATED_AT),
            Sighting(id=2, bird_id=2, location_id=2, created_at=CREATED_AT),
        ])
        self.sighting = Sighting.objects.get(pk=2)


class ModelShapeTest(BirdwatchTestCase):

    def test_sighting_shape(self):
        shape = shape_for_model(Sighting)
        self.assertEqual(shape.field_names, ['id', 'bird_id', 'location_id', 'created_at', 'updated_at'])
        self.assertEqual(set(shape.relations), {'bird', 'location'})
        self.assertFalse(shape.relations['bird'].many)

    def test_reverse_relations_are_plural(self):
        shape = shape_for_model(Bird)
        self.assertIn('sightings', shape.relations)
        self.assertTrue(shape.relations['sightings'].many)
        self.assertNotIn('sightings', shape.fields)

    def test_shapes_with_methods_are_cached(self):
        self.assertIs(shape_for_model(Sighting, methods=['summary']), shape_for_model(Sighting, methods=('summary',)))
        self.assertIsNot(shape_for_model(Sighting, methods=['summary']), shape_for_model(Sighting))
        self.assertIs(SightingSerializer.get_shape(), SightingSerializer.get_shape())

    def test_serializer_builds_shape_once(self):
        shapes._model_shapes.pop((Sighting, ('summary',)), None)
        with mock.patch.object(Sighting._meta, 'get_fields', wraps=Sighting._meta.get_fields) as get_fields:
            for sighting in Sighting.objects.order_by('id'):
                SightingSerializer(sighting).data
            SightingSerializer(Sighting.objects.all(), many=True).data
        self.assertEqual(get_fields.call_count, 1)

    def test_project_sighting(self):
        self.assertEqual(project(self.sighting, SightingSerializer.projection), EXPECTED_SIGHTING)

    def test_project_queryset(self):
        ret = project(Sighting.objects.order_by('id'), SightingSerializer.projection)
        self.assertEqual(len(ret), 2)
        self.assertEqual(ret[1], EXPECTED_SIGHTING)
        self.assertEqual(ret[0]['bird'], {'name': 'Northern Cardinal', 'species': 'Cardinalis Cardinalis'})

    def test_project_reverse_relation(self):
        bird = Bird.objects.get(pk=2)
        ret = project(bird, ProjectionSpec(only=['name'], include={'sightings': {'only': ['id']}}))
        self.assertEqual(ret, {'name': 'Grackle', 'sightings': [{'id': 2}]})

        Sighting.objects.filter(bird=bird).delete()
        ret = project(bird, ProjectionSpec(only=['name'], include=['sightings']))
        self.assertEqual(ret, {'name': 'Grackle', 'sightings': []})

    def test_unknown_field(self):
        with self.assertRaises(UnknownFieldError):
            project(self.sighting, ProjectionSpec(only=['nonexistent_field']))
        with self.assertRaises(UnknownFieldError):
            # relations are not fields
            project(self.sighting, ProjectionSpec(only=['bird']))

    def test_unknown_relation(self):
        with self.assertRaises(UnknownRelationError):
            project(Sighting.objects.all(), ProjectionSpec(include=['observer']))


class SerializerTest(BirdwatchTestCase):

    def test_data(self):
        self.assertEqual(SightingSerializer(self.sighting).data, EXPECTED_SIGHTING)

    def test_many(self):
        data = SightingSerializer(Sighting.objects.order_by('id'), many=True).data
        self.assertEqual(list(data), [project(s, SightingSerializer.projection) for s in Sighting.objects.order_by('id')])

    def test_to_serialized_json(self):
        text = SightingSerializer(self.sighting).to_serialized_json()
        self.assertIn('"created_at":"2019-05-14T14:56:35.978Z"', text)
        self.assertIn('"bird":{"name":"Grackle","species":"Quiscalus Quiscula"}', text)
        self.assertNotIn('updated_at', text)

    def test_many_to_serialized_json(self):
        text = SightingSerializer(Sighting.objects.order_by('id'), many=True).to_serialized_json()
        self.assertTrue(text.startswith('[{"id":1,'))
        self.assertEqual(text.count('"created_at":"2019-05-14T14:56:35.978Z"'), 2)
        self.assertIn('"bird":{"name":"Northern Cardinal","species":"Cardinalis Cardinalis"}', text)
        self.assertNotIn('updated_at', text)

    def test_methods(self):
        projection = ProjectionSpec(only=['id'], methods=['summary'])
        data = SightingSerializer(self.sighting, context={'projection': projection}).data
        self.assertEqual(data, {'id': 2, 'summary': 'Grackle sighted in US'})

    def test_context_projection_overrides_class(self):
        data = SightingSerializer(self.sighting, context={'projection': {'only': ['id']}}).data
        self.assertEqual(data, {'id': 2})

    def test_registered_projections_validate(self):
        registered = dict(ProjectionSerializerMeta.iter_all())
        self.assertIn('sightings.serializers.SightingSerializer', registered)
        validate_registered()

    def test_options_dict_projection_validates(self):
        class DictSightingSerializer(ProjectedModelSerializer):
            projection = {'except': ['updated_at'], 'include': {'bird': {'only': ['name']}}}

            class Meta:
                model = Sighting
                fields = ['bird']

        try:
            spec = DictSightingSerializer.validate_projection()
            self.assertEqual(spec.except_, ('updated_at',))
            with self.assertLogs('field_projection.serializers', level='DEBUG') as logs:
                validate_registered()
            self.assertTrue(any('DictSightingSerializer' in line and "'except': ['updated_at']" in line
                                for line in logs.output))
            self.assertEqual(DictSightingSerializer(self.sighting).data['bird'], {'name': 'Grackle'})
        finally:
            ProjectionSerializerMeta.registry.pop(f"{__name__}.DictSightingSerializer")

    def test_invalid_projection_fails_validation(self):
        class BrokenSightingSerializer(ProjectedModelSerializer):
            projection = ProjectionSpec(include={'bird': {'only': ['wingspan']}})

            class Meta:
                model = Sighting
                fields = ['bird']

        try:
            with self.assertRaises(UnknownFieldError):
                BrokenSightingSerializer.validate_projection()
            with self.assertRaises(UnknownFieldError):
                validate_registered()
        finally:
            ProjectionSerializerMeta.registry.pop(f"{__name__}.BrokenSightingSerializer")

    def test_missing_model(self):
        class ModellessSerializer(ProjectedModelSerializer):
            pass

        try:
            with self.assertRaises(ImproperlyConfigured):
                ModellessSerializer.get_shape()
        finally:
            ProjectionSerializerMeta.registry.pop(f"{__name__}.ModellessSerializer")


class SightingApiTest(BirdwatchTestCase):

    def setUp(self):
        super().setUp()
        self.client = APIClient()

    def test_list(self):
        response = self.client.get('/sightings/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response['Content-Type'], 'application/json')
        self.assertEqual(len(response.json()), 2)
        self.assertEqual(response.json()[1], EXPECTED_SIGHTING)

    def test_retrieve(self):
        response = self.client.get('/sightings/2/', HTTP_ACCEPT='text/html')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response['Content-Type'], 'application/json')
        self.assertEqual(response.json(), EXPECTED_SIGHTING)

    def test_create(self):
        response = self.client.post('/sightings/', {'bird': 1, 'location': 2}, format='json')
        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertEqual(list(body), ['id', 'bird_id', 'location_id', 'created_at', 'bird', 'location'])
        self.assertEqual(body['bird'], {'name': 'Northern Cardinal', 'species': 'Cardinalis Cardinalis'})
        self.assertEqual(body['location'], {'latitude': 30.26715, 'longitude': -97.74306})
        self.assertTrue(Sighting.objects.filter(pk=body['id'], bird_id=1, location_id=2).exists())

    def test_create_validation_error(self):
        response = self.client.post('/sightings/', {'bird': 99, 'location': 2}, format='json')
        self.assertEqual(response.status_code, 400)
        self.assertIn('bird', response.json())

    def test_update(self):
        response = self.client.patch('/sightings/2/', {'bird': 1}, format='json')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['bird_id'], 1)
        self.assertEqual(response.json()['bird']['name'], 'Northern Cardinal')

    def test_delete(self):
        response = self.client.delete('/sightings/2/')
        self.assertEqual(response.status_code, 204)
        self.assertFalse(Sighting.objects.filter(pk=2).exists())

    def test_projection_error_is_a_500(self):
        broken = {'list': ProjectionSpec(only=['nonexistent_field'])}
        original = SightingViewSet.action_projections
        SightingViewSet.action_projections = broken
        try:
            with self.assertLogs('field_projection.views', level='ERROR'):
                response = self.client.get('/sightings/')
        finally:
            SightingViewSet.action_projections = original
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()['code'], 'unknown_field')
        self.assertIn('nonexistent_field', response.json()['detail'])

    def test_broken_create_projection_saves_nothing(self):
        original = SightingViewSet.action_projections
        SightingViewSet.action_projections = {'create': ProjectionSpec(only=['nonexistent_field'])}
        try:
            with self.assertLogs('field_projection.views', level='ERROR'):
                response = self.client.post('/sightings/', {'bird': 1, 'location': 2}, format='json')
        finally:
            SightingViewSet.action_projections = original
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()['code'], 'unknown_field')
        self.assertEqual(Sighting.objects.count(), 2)

    def test_broken_update_projection_changes_nothing(self):
        original = SightingViewSet.action_projections
        SightingViewSet.action_projections = {'partial_update': {'include': ['observer']}}
        try:
            with self.assertLogs('field_projection.views', level='ERROR'):
                response = self.client.patch('/sightings/2/', {'bird': 1}, format='json')
        finally:
            SightingViewSet.action_projections = original
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()['code'], 'unknown_relation')
        self.assertEqual(Sighting.objects.get(pk=2).bird_id, 2)


class BirdApiTest(BirdwatchTestCase):

    def setUp(self):
        super().setUp()
        self.client = APIClient()

    def test_list_uses_default_projection(self):
        response = self.client.get('/birds/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(set(response.json()[0]), {'id', 'name', 'species', 'color', 'created_at', 'updated_at'})

    def test_retrieve_includes_sightings(self):
        response = self.client.get('/birds/2/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {
            'id': 2,
            'name': 'Grackle',
            'species': 'Quiscalus Quiscula',
            'color': 'black',
            'created_at': response.json()['created_at'],
            'sightings': [{'id': 2, 'location_id': 2, 'created_at': '2019-05-14T14:56:35.978Z'}],
        })

    def test_create_location(self):
        response = self.client.post('/locations/', {'latitude': 1.5, 'longitude': 2.5, 'country': 'FR'}, format='json')
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()['country'], 'FR')


class SeedCommandTest(TestCase):

    def test_seed(self):
        out = StringIO()
        call_command('seed_sightings', stdout=out)
        self.assertEqual(Sighting.objects.count(), 3)
        call_command('seed_sightings', stdout=out)
        self.assertEqual(Sighting.objects.count(), 3)
        call_command('seed_sightings', '--flush', stdout=out)
        self.assertEqual(Bird.objects.count(), 3)
        self.assertIn('sighting(s) created', out.getvalue())


class AppReadyTest(SimpleTestCase):

    def setUp(self):
        self.config = apps.get_app_config('field_projection')

    @override_settings(FIELD_PROJECTION_AUTODISCOVER=True, FIELD_PROJECTION_VALIDATE_ON_READY=True)
    def test_ready_discovers_and_validates(self):
        with mock.patch('field_projection.apps.autodiscover_modules') as autodiscover, \
                mock.patch('field_projection.serializers.validate_registered') as validate:
            self.config.ready()
        autodiscover.assert_called_once_with('serializers')
        validate.assert_called_once_with()

    @override_settings(FIELD_PROJECTION_AUTODISCOVER=False, FIELD_PROJECTION_VALIDATE_ON_READY=False)
    def test_ready_can_skip_both(self):
        with mock.patch('field_projection.apps.autodiscover_modules') as autodiscover, \
                mock.patch('field_projection.serializers.validate_registered') as validate:
            self.config.ready()
        autodiscover.assert_not_called()
        validate.assert_not_called()

    def test_ready_reports_broken_projection(self):
        class BrokenLocationSerializer(ProjectedModelSerializer):
            projection = ProjectionSpec(only=['altitude'])

            class Meta:
                model = Location
                fields = ['latitude']

        try:
            with override_settings(FIELD_PROJECTION_VALIDATE_ON_READY=True):
                with self.assertRaises(UnknownFieldError):
                    self.config.ready()
            with override_settings(FIELD_PROJECTION_VALIDATE_ON_READY=False):
                self.config.ready()
        finally:
            ProjectionSerializerMeta.registry.pop(f"{__name__}.BrokenLocationSerializer")
