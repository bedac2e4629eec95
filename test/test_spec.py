from dataclasses import FrozenInstanceError

from django.test import SimpleTestCase

from field_projection import ProjectionSpec
from field_projection import shapes as shapes_module, spec as spec_module


class ProjectionSpecTest(SimpleTestCase):

    def test_from_options(self):
        spec = ProjectionSpec.from_options({
            'except': ['updated_at'],
            'include': {'bird': {'only': ['name', 'species']}, 'location': {'include': ['sightings']}},
        })
        self.assertIsNone(spec.only)
        self.assertEqual(spec.except_, ('updated_at',))
        self.assertEqual(list(spec.include), ['bird', 'location'])
        self.assertEqual(spec.include['bird'].only, ('name', 'species'))
        self.assertEqual(list(spec.include['location'].include), ['sightings'])
        self.assertTrue(spec.include['location'].include['sightings'].is_empty)

    def test_options_round_trip(self):
        options = {
            'only': ['id'],
            'methods': ['summary'],
            'include': {'bird': {'except': ['color']}},
        }
        self.assertEqual(ProjectionSpec.from_options(options).to_options(), options)

    def test_unsupported_option(self):
        with self.assertRaises(ValueError):
            ProjectionSpec.from_options({'exclude': ['id']})
        with self.assertRaises(TypeError):
            ProjectionSpec.coerce(['id'])

    def test_single_names_are_accepted(self):
        spec = ProjectionSpec(only='id', include='bird')
        self.assertEqual(spec.only, ('id',))
        self.assertEqual(list(spec.include), ['bird'])

    def test_immutable(self):
        spec = ProjectionSpec(include={'bird': {}})
        with self.assertRaises(FrozenInstanceError):
            spec.only = ('id',)
        with self.assertRaises(TypeError):
            spec.include['location'] = ProjectionSpec()

    def test_equality(self):
        self.assertEqual(ProjectionSpec(include=['bird']), ProjectionSpec(include={'bird': {}}))
        self.assertNotEqual(ProjectionSpec(only=['id']), ProjectionSpec(except_=['id']))

    def test_modules_are_documented(self):
        for module in (spec_module, shapes_module):
            self.assertIsNotNone(module.__doc__, module.__name__)
            self.assertIn('projection', module.__doc__)
