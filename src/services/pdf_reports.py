"""PDF exports: nutrition history reports and plan sheets (reportlab platypus)."""
from __future__ import annotations

from datetime import date, datetime, timezone
from io import BytesIO
from typing import Any, Iterable
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import cm
from reportlab.platypus import HRFlowable, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from src.services.rounding import round_int

BRAND_GREEN = colors.HexColor("#22C55E")

PERIOD_LABELS = {
    "daily": "Diário",
    "weekly": "Semanal",
    "monthly": "Mensal",
    "custom": "Personalizado",
}

WEEK_DAY_LABELS = {
    "segunda": "Segunda", "terca": "Terça", "quarta": "Quarta", "quinta": "Quinta",
    "sexta": "Sexta", "sabado": "Sábado", "domingo": "Domingo",
}

MEAL_ORDER = ["breakfast", "lunch", "lanche", "snack", "dinner"]


def _fmt_date(value: Any) -> str:
    if isinstance(value, (date, datetime)):
        return value.strftime("%d/%m/%Y")
    try:
        return date.fromisoformat(str(value)).strftime("%d/%m/%Y")
    except ValueError:
        return str(value)


def _table(data: list[list], col_widths=None, header=True) -> Table:
    table = Table(data, colWidths=col_widths, hAlign="LEFT")
    style = [
        ("FONTSIZE", (0, 0), (-1, -1), 9),
        ("GRID", (0, 0), (-1, -1), 0.5, colors.lightgrey),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.HexColor("#F3F4F6")]),
    ]
    if header:
        style += [
            ("BACKGROUND", (0, 0), (-1, 0), BRAND_GREEN),
            ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ]
    table.setStyle(TableStyle(style))
    return table


class NutritionPDFGenerator:
    def __init__(self):
        self.styles = getSampleStyleSheet()
        self.styles.add(ParagraphStyle(
            name="NutriaTitle", parent=self.styles["Title"],
            fontSize=20, leading=24, textColor=BRAND_GREEN, alignment=0, spaceAfter=6,
        ))
        self.styles.add(ParagraphStyle(
            name="NutriaHeading", parent=self.styles["Heading2"],
            fontSize=14, leading=18, spaceBefore=12, spaceAfter=6,
            textColor=colors.HexColor("#1F2937"),
        ))
        self.styles.add(ParagraphStyle(
            name="NutriaBody", parent=self.styles["BodyText"], fontSize=10, leading=14,
        ))
        self.styles.add(ParagraphStyle(
            name="NutriaSmall", parent=self.styles["BodyText"], fontSize=8, leading=10,
            textColor=colors.grey,
        ))

    def _p(self, text: str, style: str = "NutriaBody") -> Paragraph:
        return Paragraph(escape(str(text)), self.styles[style])

    def _build(self, story: list) -> bytes:
        buffer = BytesIO()
        doc = SimpleDocTemplate(
            buffer, pagesize=A4,
            rightMargin=2 * cm, leftMargin=2 * cm, topMargin=2 * cm, bottomMargin=2 * cm,
            title="NutrIA",
        )
        doc.build(story)
        content = buffer.getvalue()
        buffer.close()
        return content

    def _header(self, title: str) -> list:
        generated = datetime.now(timezone.utc).strftime("%d/%m/%Y")
        return [
            self._p(title, "NutriaTitle"),
            self._p(f"Gerado em: {generated}", "NutriaSmall"),
            HRFlowable(width="100%", thickness=1, color=BRAND_GREEN),
            Spacer(1, 8),
        ]

    def _user_section(self, user: Any) -> list:
        name = " ".join(filter(None, [user.first_name, user.last_name])) or "N/A"
        return [
            self._p("Informações do Usuário", "NutriaHeading"),
            self._p(f"Nome: {name}"),
            self._p(f"Email: {user.email}"),
        ]

    def nutrition_report(self, user: Any, history: Iterable[Any], start: Any, end: Any, period: str) -> bytes:
        rows = list(history)
        story = self._header("Relatório Nutricional - NutrIA")
        story += self._user_section(user)
        story.append(self._p(f"Período: {_fmt_date(start)} a {_fmt_date(end)} "
                             f"({PERIOD_LABELS.get(period, period)})"))

        story.append(self._p("Consumo Diário", "NutriaHeading"))
        if not rows:
            story.append(self._p("Nenhum registro de nutrição neste período."))
        else:
            data = [["Data", "Calorias (kcal)", "Proteínas (g)", "Carboidratos (g)", "Gorduras (g)"]]
            for r in rows:
                data.append([
                    _fmt_date(r.date),
                    round_int(r.total_calories or 0),
                    round_int(r.total_protein or 0),
                    round_int(r.total_carbs or 0),
                    round_int(r.total_fat or 0),
                ])
            story.append(_table(data))

            n = len(rows)
            goals = [user.daily_calories or 2000, user.daily_protein or 120,
                     user.daily_carbs or 225, user.daily_fat or 67]
            averages = [
                sum(r.total_calories or 0 for r in rows) / n,
                sum(r.total_protein or 0 for r in rows) / n,
                sum(r.total_carbs or 0 for r in rows) / n,
                sum(r.total_fat or 0 for r in rows) / n,
            ]
            story.append(self._p("Média vs. Meta", "NutriaHeading"))
            summary = [["", "Média diária", "Meta", "% da meta"]]
            for label, unit, avg, goal in zip(
                ["Calorias", "Proteínas", "Carboidratos", "Gorduras"],
                ["kcal", "g", "g", "g"], averages, goals,
            ):
                pct = f"{round_int(avg / goal * 100)}%" if goal else "-"
                summary.append([label, f"{round_int(avg)} {unit}", f"{goal} {unit}", pct])
            story.append(_table(summary))

        return self._build(story)

    def plan_sheet(self, user: Any, plan: Any) -> bytes:
        story = self._header("Meu Plano - NutrIA")
        story += self._user_section(user)
        story.append(self._p("Detalhes do Plano", "NutriaHeading"))
        story.append(self._p(f"Plano: {plan.name}"))
        if plan.description:
            story.append(self._p(f"Descrição: {plan.description}"))

        content = plan.content or {}
        if (plan.daily_calories or 0) > 0:
            story += self._diet_section(plan, content.get("meals") or {})
        else:
            story += self._workout_section(content.get("workouts") or {})
        return self._build(story)

    def _diet_section(self, plan: Any, meals: dict) -> list:
        elements = [
            self._p("Metas Nutricionais", "NutriaHeading"),
            _table([
                ["Calorias", "Proteínas", "Carboidratos", "Gorduras"],
                [f"{plan.daily_calories} kcal", f"{plan.macro_protein or 0}g",
                 f"{plan.macro_carbs or 0}g", f"{plan.macro_fat or 0}g"],
            ]),
        ]
        if not isinstance(meals, dict) or not meals:
            return elements
        elements.append(self._p("Cardápio", "NutriaHeading"))
        for day, day_meals in meals.items():
            if not isinstance(day_meals, dict):
                continue
            elements.append(self._p(WEEK_DAY_LABELS.get(day, str(day).capitalize()), "Heading4"))
            data = [["Horário", "Refeição", "Descrição", "kcal"]]
            keys = sorted(day_meals, key=lambda k: MEAL_ORDER.index(k) if k in MEAL_ORDER else len(MEAL_ORDER))
            for key in keys:
                meal = day_meals[key]
                if not isinstance(meal, dict):
                    continue
                data.append([
                    meal.get("time", ""),
                    meal.get("name", key),
                    self._p(meal.get("description", "")),
                    meal.get("calories", ""),
                ])
            elements.append(_table(data, col_widths=[2 * cm, 3.5 * cm, 9 * cm, 1.5 * cm]))
        return elements

    def _workout_section(self, workouts: dict) -> list:
        elements = [self._p("Treinos", "NutriaHeading")]
        if not isinstance(workouts, dict) or not workouts:
            elements.append(self._p("Nenhum treino cadastrado neste plano."))
            return elements
        for key, workout in workouts.items():
            if not isinstance(workout, dict):
                continue
            title = workout.get("name") or f"Treino {key}"
            if workout.get("duration"):
                title = f"{title} ({workout['duration']})"
            elements.append(self._p(title, "Heading4"))
            data = [["Exercício", "Séries", "Repetições", "Descanso"]]
            for ex in workout.get("exercises") or []:
                data.append([ex.get("name", ""), ex.get("sets", ""), ex.get("reps", ""), ex.get("rest", "")])
            elements.append(_table(data, col_widths=[8 * cm, 2.5 * cm, 3 * cm, 2.5 * cm]))
        return elements


_generator = None


def _get_generator() -> NutritionPDFGenerator:
    global _generator
    if _generator is None:
        _generator = NutritionPDFGenerator()
    return _generator


def generate_nutrition_report(user: Any, history: Iterable[Any], start: Any, end: Any, period: str) -> bytes:
    return _get_generator().nutrition_report(user, history, start, end, period)


def generate_plan_pdf(user: Any, plan: Any) -> bytes:
    return _get_generator().plan_sheet(user, plan)
