from typing import Any, Dict, List, Optional, Type

from trellis_di.domain import DEFAULT_RULE, EffectiveRule, IRuleResolver, ITypeIntrospector, MethodCall, Rule


class RuleResolver(IRuleResolver):
    """Merges the default, interface and exact rules that apply to an identifier.

    Scalar settings follow the most specific rule that defines them (exact, then
    interface, then default). Call lists are concatenated least specific first, so
    that calls from an exact rule run last and win over earlier ones.

    Attributes:
        _introspector: Used to find target classes and their interfaces.
    """

    def __init__(self, introspector: ITypeIntrospector) -> None:
        self._introspector = introspector

    def resolve_effective(
        self,
        key: str,
        cls: Optional[Type[Any]],
        rules: Dict[str, Rule],
        default_shared: bool,
    ) -> EffectiveRule:
        """Compute the effective rule for an identifier.

        Args:
            key: Normalized identifier.
            cls: Class the identifier names, if any.
            rules: Rule table keyed by normalized identifier.
            default_shared: Container-wide sharing default.

        Returns:
            A frozen view of the merged configuration.

        Example:
            >>> rules = {"*": Rule(identifier="*").add_call("boot")}
            >>> resolver.resolve_effective("app.Mailer", Mailer, rules, False).calls
            (MethodCall(method='boot', args={}),)
        """
        exact = rules.get(key)
        inherit = exact.inherit if exact is not None else True

        target: Any = cls
        if exact is not None and exact.target_class is not None:
            target = exact.target_class
        target_cls = self._introspector.find_class(target) if target is not None else None

        default = rules.get(DEFAULT_RULE) if inherit and key != DEFAULT_RULE else None
        interface_rules = self._interface_rules(key, target_cls, rules) if inherit else []

        calls: List[MethodCall] = []
        if default is not None:
            calls.extend(default.calls)
        for rule in interface_rules:
            calls.extend(rule.calls)
        if exact is not None:
            calls.extend(exact.calls)

        return EffectiveRule(
            key=key,
            target_class=target,
            factory=exact.factory if exact is not None else None,
            shared=self._shared(exact, interface_rules, default, default_shared),
            constructor_args=dict(exact.constructor_args) if exact is not None else {},
            calls=tuple(calls),
        )

    def _interface_rules(self, key: str, cls: Optional[Type[Any]], rules: Dict[str, Rule]) -> List[Rule]:
        if cls is None:
            return []
        matched = []
        for interface in self._introspector.interfaces_of(cls):
            interface_key = self._introspector.canonical_name(interface).casefold()
            if interface_key != key and interface_key in rules:
                matched.append(rules[interface_key])
        return matched

    @staticmethod
    def _shared(
        exact: Optional[Rule],
        interface_rules: List[Rule],
        default: Optional[Rule],
        default_shared: bool,
    ) -> bool:
        if exact is not None and exact.shared is not None:
            return exact.shared
        for rule in reversed(interface_rules):
            if rule.shared is not None:
                return rule.shared
        if default is not None and default.shared is not None:
            return default.shared
        return default_shared
