from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class RuleExample:
    language: str
    bad: str
    good: str | None = None
    notes: str | None = None


EXAMPLES: dict[str, RuleExample] = {
    "R01": RuleExample(
        language="java",
        bad=(
            "import io.reactivex.Observable;\n"
            "\n"
            "class Repository {\n"
            "    Observable<String> names() {\n"
            "        return Observable.just(\"a\", \"b\");\n"
            "    }\n"
            "}\n"
        ),
        good=(
            "import android.support.annotation.CheckResult;\n"
            "import io.reactivex.Observable;\n"
            "\n"
            "class Repository {\n"
            "    @CheckResult\n"
            "    Observable<String> names() {\n"
            "        return Observable.just(\"a\", \"b\");\n"
            "    }\n"
            "}\n"
        ),
        notes="Subclasses of Observable, Single, Completable, Maybe and Flowable count too.",
    ),
    "D01": RuleExample(
        language="java",
        bad=(
            "import dagger.Module;\n"
            "import dagger.Provides;\n"
            "\n"
            "@Module\n"
            "class ConfigModule {\n"
            "    @Provides\n"
            "    String baseUrl() {\n"
            "        return \"https://example.com\";\n"
            "    }\n"
            "}\n"
        ),
        good=(
            "import dagger.Module;\n"
            "import dagger.Provides;\n"
            "import javax.inject.Named;\n"
            "\n"
            "@Module\n"
            "class ConfigModule {\n"
            "    @Provides\n"
            "    @Named(\"baseUrl\")\n"
            "    String baseUrl() {\n"
            "        return \"https://example.com\";\n"
            "    }\n"
            "}\n"
        ),
        notes="Only @Provides methods of classes annotated with @Module are checked.",
    ),
}
