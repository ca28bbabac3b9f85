import pytest
from datetime import date, timedelta
from apps.analytics.exceptions import InvalidMethodError
from apps.analytics.forecast import (
    exponential_smoothing_forecast,
    forecast_series,
    linear_regression_forecast,
    moving_average_forecast,
    trend_change,
    trend_direction,
)


def series(*values, start=date(2025, 1, 1)):
    return [
        {'date': (start + timedelta(days=i)).isoformat(), 'value': value}
        for i, value in enumerate(values)
    ]


class TestTrend:
    def test_change_between_halves(self):
        assert trend_change([1, 2, 3, 4, 5, 6, 7]) == pytest.approx(175.0)

    def test_zero_first_half(self):
        assert trend_change([0, 0, 5, 5]) == 0

    def test_direction(self):
        assert trend_direction(5.1) == 'up'
        assert trend_direction(-5.1) == 'down'
        assert trend_direction(5) == 'stable'


class TestLinearRegression:
    def test_perfect_line(self):
        result = linear_regression_forecast(series(1, 2, 3, 4, 5, 6, 7), periods=3)

        assert result['forecast'] == [
            {'date': '2025-01-08', 'value': 8},
            {'date': '2025-01-09', 'value': 9},
            {'date': '2025-01-10', 'value': 10},
        ]
        assert result['confidence'] == 'high'
        assert result['trend'] == 'up'
        assert result['percentageChange'] == 175.0

    def test_never_negative(self):
        result = linear_regression_forecast(series(9, 6, 3, 0), periods=2)
        assert [point['value'] for point in result['forecast']] == [0, 0]
        assert result['trend'] == 'down'

    def test_flat_series_is_low_confidence(self):
        result = linear_regression_forecast(series(4, 4, 4, 4, 4, 4, 4), periods=1)
        assert result['forecast'][0]['value'] == 4
        assert result['confidence'] == 'low'
        assert result['trend'] == 'stable'

    def test_not_enough_points(self):
        data = series(3)
        result = linear_regression_forecast(data)
        assert result == {
            'historical': data,
            'forecast': [],
            'confidence': 'low',
            'trend': 'stable',
            'percentageChange': 0,
        }


class TestMovingAverage:
    def test_flat_at_recent_mean(self):
        result = moving_average_forecast(series(*([1] * 7 + [4] * 7)), periods=2)

        assert [point['value'] for point in result['forecast']] == [4, 4]
        assert result['confidence'] == 'medium'
        assert result['trend'] == 'up'

    def test_needs_full_window(self):
        assert moving_average_forecast(series(1, 2, 3, 4, 5, 6))['forecast'] == []


class TestExponentialSmoothing:
    def test_smoothed_value(self):
        result = exponential_smoothing_forecast(series(10, 0), periods=1)

        assert result['forecast'] == [{'date': '2025-01-03', 'value': 7}]
        assert result['confidence'] == 'low'
        assert result['trend'] == 'down'
        assert result['percentageChange'] == -100.0

    def test_confidence_with_a_week_of_data(self):
        result = exponential_smoothing_forecast(series(2, 2, 2, 2, 2, 2, 2))
        assert result['confidence'] == 'medium'
        assert len(result['forecast']) == 7


class TestForecastSeries:
    def test_dispatch(self):
        data = series(1, 2, 3)
        assert forecast_series(data, 'exponential', 2) == exponential_smoothing_forecast(data, 2)

    def test_unknown_method(self):
        with pytest.raises(InvalidMethodError):
            forecast_series(series(1, 2), 'arima')
