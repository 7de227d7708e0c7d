import gc
import uuid
import logging
import unittest
from abc import ABC, abstractmethod
from fractions import Fraction

from bindery import (
    Container,
    ContainerAwareMixin,
    Definition,
    DefinitionFrozenError,
    Literal,
    Reference,
    UnknownMethodError,
    UnknownTypeError,
    resolve_argument
)

# configure root logger once
logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
logger = logging.getLogger(__name__)


class SampleService:
    def __init__(self):
        self.id = uuid.uuid4()


class Point:
    def __init__(self, x, y, label):
        self.x = x
        self.y = y
        self.label = label


class BarInterface(ABC):
    @abstractmethod
    def ping(self):
        ...


class SomeBarImpl(BarInterface):
    def ping(self):
        return 'pong'


class BarHolder:
    def __init__(self, bar):
        self.bar = bar


class Recorder:
    def __init__(self):
        self.calls = []

    def first(self, *args):
        self.calls.append(('first', args))

    def second(self, *args):
        self.calls.append(('second', args))

    def third(self, *args):
        self.calls.append(('third', args))

    not_callable = 'value'


class AwareRecorder(ContainerAwareMixin):
    def __init__(self):
        self.container_at_configure = None

    def configure(self):
        self.container_at_configure = self.container


class OrderedAware(ContainerAwareMixin):
    def __init__(self):
        self.calls = []

    def set_container(self, container):
        self.calls.append(('set_container', container))
        super().set_container(container)

    def configure(self):
        self.calls.append(('configure', self.container))


class TestDefinitionConstruction(unittest.TestCase):
    def setUp(self):
        self.container = Container()

    def test_no_arguments_is_plain_construction(self):
        """A bare definition builds the target with no arguments"""
        instance = Definition(self.container, SampleService)()

        self.assertIsInstance(instance, SampleService)

    def test_each_invocation_builds_a_new_object(self):
        definition = Definition(self.container, SampleService)

        self.assertIsNot(definition(), definition())

    def test_literal_arguments_pass_through_in_order(self):
        """Literal values reach the constructor unchanged and in order"""
        point = Definition(self.container, Point).add_args([1, 2.5, 'origin'])()

        self.assertEqual(point.x, 1)
        self.assertEqual(point.y, 2.5)
        self.assertEqual(point.label, 'origin')

    def test_add_arg_appends(self):
        point = (
            Definition(self.container, Point)
            .add_arg([1])
            .add_arg({'y': 2})
            .add_arg(None)
        )()

        self.assertEqual(point.x, [1])
        self.assertEqual(point.y, {'y': 2})
        self.assertIsNone(point.label)

    def test_bound_class_argument_is_substituted(self):
        """A class argument that is bound resolves to the built binding"""
        self.container.bind(BarInterface, SomeBarImpl)

        holder = Definition(self.container, BarHolder).add_arg(BarInterface)()

        self.assertIsInstance(holder.bar, SomeBarImpl)

    def test_concrete_class_argument_is_built(self):
        holder = Definition(self.container, BarHolder).add_arg(SampleService)()

        self.assertIsInstance(holder.bar, SampleService)

    def test_abstract_unbound_class_argument_is_passed_through(self):
        holder = Definition(self.container, BarHolder).add_arg(BarInterface)()

        self.assertIs(holder.bar, BarInterface)

    def test_literal_wrapper_passes_class_through(self):
        holder = Definition(self.container, BarHolder).add_arg(Literal(SampleService))()

        self.assertIs(holder.bar, SampleService)

    def test_strings_are_never_resolved_implicitly(self):
        """A string equal to a bound key stays a string unless wrapped in Reference"""
        self.container.bind('bar', SomeBarImpl)

        holder = Definition(self.container, BarHolder).add_arg('bar')()

        self.assertEqual(holder.bar, 'bar')

    def test_reference_resolves_string_key(self):
        self.container.bind('bar', SomeBarImpl)

        holder = Definition(self.container, BarHolder).add_arg(Reference('bar'))()

        self.assertIsInstance(holder.bar, SomeBarImpl)

    def test_reference_to_unknown_name_raises(self):
        definition = Definition(self.container, BarHolder).add_arg(Reference('bindery_missing_module:Nothing'))

        with self.assertRaises(UnknownTypeError):
            definition()

    def test_pre_built_objects_pass_through(self):
        bar = SomeBarImpl()

        holder = Definition(self.container, BarHolder).add_arg(bar)()

        self.assertIs(holder.bar, bar)

    def test_import_string_target(self):
        self.assertEqual(Definition(self.container, 'fractions:Fraction')(), Fraction(0))
        self.assertEqual(
            Definition(self.container, 'fractions.Fraction').add_args([1, 3])(),
            Fraction(1, 3)
        )

    def test_unknown_target_type_raises(self):
        with self.assertRaises(UnknownTypeError) as context:
            Definition(self.container, 'bindery_missing_module:Missing')()

        self.assertIn('bindery_missing_module:Missing', str(context.exception))

    def test_abstract_target_type_raises(self):
        with self.assertRaises(UnknownTypeError):
            Definition(self.container, BarInterface)()


class TestDefinitionMethods(unittest.TestCase):
    def setUp(self):
        self.container = Container()

    def test_methods_run_in_reverse_registration_order(self):
        """Calls registered as [first, second, third] run as [third, second, first]"""
        recorder = (
            Definition(self.container, Recorder)
            .with_method('first')
            .with_method('second')
            .with_method('third')
        )()

        self.assertEqual([name for name, _ in recorder.calls], ['third', 'second', 'first'])

    def test_with_methods_keeps_mapping_order(self):
        recorder = Definition(self.container, Recorder).with_methods({
            'first': [1],
            'second': [2],
        })()

        self.assertEqual(recorder.calls, [('second', (2,)), ('first', (1,))])

    def test_re_registering_method_replaces_arguments_in_place(self):
        recorder = (
            Definition(self.container, Recorder)
            .with_method('first', [1])
            .with_method('second', [2])
            .with_method('first', [3])
        )()

        self.assertEqual(recorder.calls, [('second', (2,)), ('first', (3,))])

    def test_method_arguments_are_resolved(self):
        self.container.bind(BarInterface, SomeBarImpl)

        recorder = Definition(self.container, Recorder).with_method('first', [BarInterface, 'literal'])()

        name, args = recorder.calls[0]
        self.assertEqual(name, 'first')
        self.assertIsInstance(args[0], SomeBarImpl)
        self.assertEqual(args[1], 'literal')

    def test_unknown_method_raises(self):
        definition = Definition(self.container, Recorder).with_method('missing')

        with self.assertRaises(UnknownMethodError) as context:
            definition()

        self.assertEqual(context.exception.method, 'missing')

    def test_non_callable_attribute_raises(self):
        with self.assertRaises(UnknownMethodError):
            Definition(self.container, Recorder).with_method('not_callable')()

    def test_container_aware_object_receives_container_first(self):
        """set_container runs before configured calls and is not persisted"""
        definition = Definition(self.container, AwareRecorder).with_method('configure')

        instance = definition()

        self.assertIs(instance.container, self.container)
        self.assertIs(instance.container_at_configure, self.container)
        self.assertEqual(list(definition.get_methods()), ['configure'])


    def test_injected_set_container_runs_first_even_when_configured(self):
        """A user-registered set_container is replaced by the injected one, which still runs first"""
        instance = (
            Definition(self.container, OrderedAware)
            .with_method('set_container', [None])
            .with_method('configure')
        )()

        self.assertEqual(instance.calls, [
            ('set_container', self.container),
            ('configure', self.container),
        ])


class TestDefinitionConfiguration(unittest.TestCase):
    def setUp(self):
        self.container = Container()

    def test_getters_return_copies(self):
        definition = Definition(self.container, Recorder).add_arg(1).with_method('first', [2])

        definition.get_args().append('mutated')
        definition.get_methods()['first'].append('mutated')

        self.assertEqual(definition.get_args(), [1])
        self.assertEqual(definition.get_methods(), {'first': [2]})

    def test_clean_args(self):
        definition = Definition(self.container, SampleService).add_args([1, 2]).clean_args()

        self.assertEqual(definition.get_args(), [])
        self.assertIsInstance(definition(), SampleService)

    def test_inherit_flag(self):
        definition = Definition(self.container, SampleService)
        self.assertTrue(definition.inherit())

        self.assertIs(definition.dont_inherit(), definition)
        self.assertFalse(definition.inherit())

    def test_target_and_invoked(self):
        definition = Definition(self.container, SampleService)
        self.assertIs(definition.target, SampleService)
        self.assertFalse(definition.invoked)

        definition()

        self.assertTrue(definition.invoked)

    def test_configuration_after_invocation_is_rejected(self):
        definition = Definition(self.container, SampleService)
        definition()

        for configure in (
            lambda: definition.add_arg(1),
            lambda: definition.add_args([1]),
            lambda: definition.clean_args(),
            lambda: definition.with_method('first'),
            lambda: definition.with_methods({'first': []}),
            lambda: definition.dont_inherit(),
        ):
            with self.assertRaises(DefinitionFrozenError):
                configure()

    def test_failed_invocation_can_be_retried(self):
        """A definition that failed to build stays configurable"""
        definition = Definition(self.container, BarHolder).add_arg(Reference('bar'))

        with self.assertRaises(UnknownTypeError):
            definition()

        self.assertFalse(definition.invoked)
        self.container.bind('bar', SomeBarImpl)
        definition.clean_args().add_arg(Reference('bar'))

        holder = definition()

        self.assertIsInstance(holder.bar, SomeBarImpl)
        self.assertEqual(definition.get_args(), [Reference('bar')])
        self.assertTrue(definition.invoked)

    def test_released_container_raises(self):
        container = Container()
        definition = Definition(container, SampleService)

        del container
        gc.collect()

        with self.assertRaises(ReferenceError):
            definition()


class TestResolveArgument(unittest.TestCase):
    def setUp(self):
        self.container = Container()

    def test_plain_values(self):
        for value in (1, 'text', None, [1, 2], {'a': 1}):
            self.assertEqual(resolve_argument(self.container, value), value)

    def test_reference_and_literal(self):
        self.container.instance('answer', 42)

        self.assertEqual(resolve_argument(self.container, Reference('answer')), 42)
        self.assertEqual(resolve_argument(self.container, Literal(Reference('answer'))), Reference('answer'))


if __name__ == '__main__':
    unittest.main()
