from datetime import datetime, timezone
from decimal import Decimal

from django.test import SimpleTestCase

from field_projection import (ProjectionSpec, RecordShape, Relation, UnknownFieldError,
                              UnknownRelationError, project, validate)
from field_projection.shapes import attribute

BIRD = RecordShape.declare('bird', fields=['name', 'species', 'color'])
LOCATION = RecordShape.declare('location', fields=['latitude', 'longitude', 'country'])
SIGHTING = RecordShape.declare(
    'sighting',
    fields=['id', 'bird_id', 'location_id', 'created_at', 'updated_at'],
    relations={'bird': BIRD, 'location': LOCATION},
    methods=[('label', lambda s: f"#{s['id']}")],
)
OBSERVER = RecordShape.declare(
    'observer',
    fields=['id', 'name'],
    relations={'sightings': Relation(attribute('sightings'), many=True, shape=SIGHTING)},
)

GRACKLE_SPEC = ProjectionSpec.from_options({
    'except': ['updated_at'],
    'include': {
        'bird': {'only': ['name', 'species']},
        'location': {'only': ['latitude', 'longitude']},
    },
})


def make_sighting(id=2, bird=None, location=None):
    return {
        'id': id,
        'bird_id': 2,
        'location_id': 2,
        'created_at': '2019-05-14T14:56:35.978Z',
        'updated_at': '2019-05-15T00:00:00Z',
        'bird': bird if bird is not None else {'name': 'Grackle', 'species': 'Quiscalus Quiscula', 'color': 'black'},
        'location': location if location is not None else {'latitude': 30.26715, 'longitude': -97.74306, 'country': 'US'},
    }


class ProjectTest(SimpleTestCase):

    def test_grackle_sighting(self):
        self.assertEqual(project(make_sighting(), GRACKLE_SPEC, SIGHTING), {
            'id': 2,
            'bird_id': 2,
            'location_id': 2,
            'created_at': '2019-05-14T14:56:35.978Z',
            'bird': {'name': 'Grackle', 'species': 'Quiscalus Quiscula'},
            'location': {'latitude': 30.26715, 'longitude': -97.74306},
        })

    def test_output_order(self):
        ret = project(make_sighting(), GRACKLE_SPEC, SIGHTING)
        self.assertEqual(list(ret), ['id', 'bird_id', 'location_id', 'created_at', 'bird', 'location'])

        spec = ProjectionSpec(only=['created_at', 'id'], methods=['label'], include=['location', 'bird'])
        ret = project(make_sighting(), spec, SIGHTING)
        self.assertEqual(list(ret), ['created_at', 'id', 'label', 'location', 'bird'])
        self.assertEqual(ret['label'], '#2')

    def test_empty_spec_keeps_scalar_fields_only(self):
        for spec in (None, {}, ProjectionSpec()):
            self.assertEqual(project(make_sighting(), spec, SIGHTING), {
                'id': 2,
                'bird_id': 2,
                'location_id': 2,
                'created_at': '2019-05-14T14:56:35.978Z',
                'updated_at': '2019-05-15T00:00:00Z',
            })

    def test_own_fields_follow_only_and_except(self):
        record = make_sighting()
        all_fields = set(SIGHTING.field_names)
        for excluded in ([], ['id'], ['created_at', 'updated_at'], SIGHTING.field_names):
            ret = project(record, ProjectionSpec(except_=excluded), SIGHTING)
            self.assertEqual(set(ret), all_fields - set(excluded))
        for only in ([], ['id'], ['updated_at', 'bird_id']):
            ret = project(record, ProjectionSpec(only=only), SIGHTING)
            self.assertEqual(list(ret), only)

    def test_relations_never_included_by_default(self):
        for spec in (ProjectionSpec(), ProjectionSpec(only=['id']), ProjectionSpec(except_=['id']),
                     ProjectionSpec(include={'bird': {}})):
            ret = project(make_sighting(), spec, SIGHTING)
            self.assertNotIn('location', ret)
            if 'bird' not in spec.include:
                self.assertNotIn('bird', ret)

    def test_collection_is_mapped_in_order(self):
        records = [make_sighting(id=i) for i in (3, 1, 2)]
        ret = project(records, GRACKLE_SPEC, SIGHTING)
        self.assertEqual(len(ret), len(records))
        self.assertEqual([r['id'] for r in ret], [3, 1, 2])
        for i, record in enumerate(records):
            self.assertEqual(ret[i], project(record, GRACKLE_SPEC, SIGHTING))

        self.assertEqual(project((), GRACKLE_SPEC, SIGHTING), [])
        self.assertEqual(project([], GRACKLE_SPEC), [])

    def test_plural_relation(self):
        observer = {'id': 7, 'name': 'Ada', 'sightings': [make_sighting(id=1), make_sighting(id=2)]}
        spec = ProjectionSpec(only=['name'], include={'sightings': {'only': ['id'], 'include': {'bird': {'only': ['name']}}}})
        self.assertEqual(project(observer, spec, OBSERVER), {
            'name': 'Ada',
            'sightings': [
                {'id': 1, 'bird': {'name': 'Grackle'}},
                {'id': 2, 'bird': {'name': 'Grackle'}},
            ],
        })

    def test_absent_relations(self):
        sighting = make_sighting()
        sighting['bird'] = None
        ret = project(sighting, ProjectionSpec(only=['id'], include=['bird']), SIGHTING)
        self.assertEqual(ret, {'id': 2, 'bird': None})

        observer = {'id': 7, 'name': 'Ada', 'sightings': None}
        ret = project(observer, ProjectionSpec(include=['sightings']), OBSERVER)
        self.assertEqual(ret, {'id': 7, 'name': 'Ada', 'sightings': []})

    def test_only_wins_over_except(self):
        with self.assertLogs('field_projection.spec', level='WARNING'):
            spec = ProjectionSpec(only=['id', 'updated_at'], except_=['updated_at'])
        self.assertEqual(project(make_sighting(), spec, SIGHTING),
                         {'id': 2, 'updated_at': '2019-05-15T00:00:00Z'})

    def test_reprojecting_output_is_stable(self):
        first = project(make_sighting(), ProjectionSpec(except_=['updated_at', 'bird_id']), SIGHTING)
        shape = RecordShape.for_mapping('projected', first)
        self.assertEqual(project(first, ProjectionSpec(only=list(first)), shape), first)

    def test_scalars_rendered_for_json(self):
        shape = RecordShape.declare('reading', fields=['at', 'amount'])
        record = {'at': datetime(2019, 5, 14, 14, 56, 35, 978000, tzinfo=timezone.utc), 'amount': Decimal('1.50')}
        self.assertEqual(project(record, None, shape),
                         {'at': '2019-05-14T14:56:35.978Z', 'amount': '1.50'})

    def test_objects_are_read_by_attribute(self):
        class Bird:
            name = 'Grackle'
            species = 'Quiscalus Quiscula'
            color = 'black'

        self.assertEqual(project([Bird()], {'except': ['color']}, BIRD),
                         [{'name': 'Grackle', 'species': 'Quiscalus Quiscula'}])

    def test_shape_is_required_for_plain_records(self):
        with self.assertRaises(TypeError):
            project(make_sighting(), GRACKLE_SPEC)


class ValidationTest(SimpleTestCase):

    def test_unknown_field_in_only(self):
        with self.assertRaises(UnknownFieldError) as ctx:
            project(make_sighting(), ProjectionSpec(only=['nonexistent_field']), SIGHTING)
        self.assertEqual(ctx.exception.names, ('nonexistent_field',))
        self.assertEqual(ctx.exception.shape_name, 'sighting')
        self.assertEqual(ctx.exception.code, 'unknown_field')

    def test_unknown_field_in_except_and_methods(self):
        with self.assertRaises(UnknownFieldError):
            validate(ProjectionSpec(except_=['wingspan']), SIGHTING)
        with self.assertRaises(UnknownFieldError):
            validate(ProjectionSpec(methods=['wingspan']), SIGHTING)

    def test_unknown_nested_field(self):
        spec = ProjectionSpec(include={'bird': {'only': ['wingspan']}})
        with self.assertRaises(UnknownFieldError) as ctx:
            project([make_sighting()], spec, SIGHTING)
        self.assertEqual(ctx.exception.shape_name, 'bird')

    def test_unknown_relation(self):
        with self.assertRaises(UnknownRelationError) as ctx:
            project(make_sighting(), ProjectionSpec(include=['observer']), SIGHTING)
        self.assertEqual(ctx.exception.names, ('observer',))
        self.assertEqual(ctx.exception.code, 'unknown_relation')
        self.assertIn("observer", str(ctx.exception))

    def test_no_partial_output_on_error(self):
        calls = []

        def read_id(record):
            calls.append(record)
            return record['id']

        shape = RecordShape.declare('sighting', fields=[('id', read_id)], relations={'bird': BIRD})
        with self.assertRaises(UnknownFieldError):
            project([make_sighting(), make_sighting()], ProjectionSpec(include={'bird': {'only': ['x']}}), shape)
        self.assertEqual(calls, [])
