"""String library for the Vybe language.

The classic VB functions (`Len`, `Left`, `Mid`, `InStr`, `Split`, ...) use
1-based positions; the .NET members on string values (`Substring`,
`IndexOf`, ...) are 0-based, as they are in VB.NET.
"""

from typing import Any, List, Optional

from vybe.collection_types import StringBuilderVal, is_sequence
from vybe.errors import raise_exception
from vybe.objects import EnumVal
from vybe.types import NOTHING, ArrayVal, TypeSpec, to_char, to_integer, to_string
from vybe.std.conversion import composite_format
from vybe.std.support import arg, int_arg, rest_values, string_array, text_arg, values_of


STRING_COMPARISON = ('CurrentCulture', 'CurrentCultureIgnoreCase', 'InvariantCulture',
                     'InvariantCultureIgnoreCase', 'Ordinal', 'OrdinalIgnoreCase')


def _text(value: Any) -> str:
    return '' if value is NOTHING else to_string(value)


def _ignore_case(value: Any) -> bool:
    """Whether a `StringComparison` or `CompareMethod` argument asks for case folding."""
    if isinstance(value, EnumVal):
        if value.enum_name == 'StringComparison':
            return int(value) % 2 == 1
        return int(value) == 1
    if isinstance(value, bool):
        return value
    return False


def _check_range(condition: bool, name: str):
    if not condition:
        raise_exception('ArgumentOutOfRangeException', f"Specified argument was out of the range of valid values. (Parameter '{name}')")


def split_text(text: str, separators: List[str], remove_empty: bool = False, limit: Optional[int] = None) -> List[str]:
    """Split on any of `separators`; whitespace when none are given."""
    parts = []
    current = []
    i = 0
    while i < len(text):
        if limit is not None and len(parts) == limit - 1:
            current.append(text[i:])
            break
        matched = None
        if separators:
            for sep in separators:
                if sep and text.startswith(sep, i):
                    matched = sep
                    break
        elif text[i].isspace():
            matched = text[i]
        if matched is None:
            current.append(text[i])
            i += 1
            continue
        parts.append(''.join(current))
        current = []
        i += len(matched)
    parts.append(''.join(current))
    if remove_empty:
        parts = [p for p in parts if p]
    return parts


def _find(text: str, needle: str, start: int, ignore_case: bool) -> int:
    if ignore_case:
        return text.lower().find(needle.lower(), start)
    return text.find(needle, start)


def populate_strings(registry):
    # ------------------------------------------------------------------
    # VB functions
    # ------------------------------------------------------------------
    def len_fn(interp, args):
        value = args[0]
        if value is NOTHING:
            return 0
        if isinstance(value, StringBuilderVal):
            return len(value.text)
        return len(to_string(value))

    def left(interp, args):
        count = to_integer(args[1])
        if count < 0:
            raise_exception('ArgumentException', "Argument 'Length' must be greater or equal to zero.")
        return _text(args[0])[:count]

    def right(interp, args):
        text = _text(args[0])
        count = to_integer(args[1])
        if count < 0:
            raise_exception('ArgumentException', "Argument 'Length' must be greater or equal to zero.")
        return text[len(text) - count:] if count else ''

    def mid(interp, args):
        text = _text(args[0])
        start = to_integer(args[1])
        if start < 1:
            raise_exception('ArgumentException', "Argument 'Start' must be greater than zero.")
        if len(args) > 2 and args[2] is not NOTHING:
            length = to_integer(args[2])
            if length < 0:
                raise_exception('ArgumentException', "Argument 'Length' must be greater or equal to zero.")
            return text[start - 1:start - 1 + length]
        return text[start - 1:]

    def instr(interp, args):
        if len(args) >= 3 and isinstance(args[0], int) and not isinstance(args[0], bool):
            start = to_integer(args[0])
            haystack, needle = _text(args[1]), _text(args[2])
            compare = arg(args, 3, 0)
        else:
            start = 1
            haystack, needle = _text(args[0]), _text(args[1])
            compare = arg(args, 2, 0)
        if start < 1:
            raise_exception('ArgumentException', "Argument 'Start' must be greater than zero.")
        if start > len(haystack):
            return 0 if needle or start > len(haystack) + 1 else start
        if not needle:
            return start
        return _find(haystack, needle, start - 1, _ignore_case(compare) or compare == 1) + 1

    def instr_rev(interp, args):
        haystack, needle = _text(args[0]), _text(args[1])
        start = int_arg(args, 2, -1)
        ignore = _ignore_case(arg(args, 3, 0)) or arg(args, 3, 0) == 1
        if start == -1:
            start = len(haystack)
        if not needle:
            return start
        region = haystack[:start]
        if ignore:
            return region.lower().rfind(needle.lower()) + 1
        return region.rfind(needle) + 1

    def replace_fn(interp, args):
        text, find, repl = _text(args[0]), _text(args[1]), _text(args[2])
        start = int_arg(args, 3, 1)
        count = int_arg(args, 4, -1)
        ignore = _ignore_case(arg(args, 5, 0)) or arg(args, 5, 0) == 1
        text = text[start - 1:]
        if not find:
            return text
        out = []
        i = 0
        done = 0
        while count < 0 or done < count:
            pos = _find(text, find, i, ignore)
            if pos < 0:
                break
            out.append(text[i:pos])
            out.append(repl)
            i = pos + len(find)
            done += 1
        out.append(text[i:])
        return ''.join(out)

    def split_fn(interp, args):
        text = _text(args[0])
        delimiter = text_arg(args, 1, ' ') if len(args) > 1 else ' '
        limit = int_arg(args, 2, -1)
        if not delimiter:
            return string_array([text])
        return string_array(split_text(text, [delimiter], limit=None if limit < 0 else limit))

    def join_fn(interp, args):
        delimiter = text_arg(args, 1, ' ') if len(args) > 1 else ' '
        return delimiter.join(interp.stringify(v) for v in values_of(args[0]))

    def trim(interp, args):
        return _text(args[0]).strip(' ')

    def ltrim(interp, args):
        return _text(args[0]).lstrip(' ')

    def rtrim(interp, args):
        return _text(args[0]).rstrip(' ')

    def ucase(interp, args):
        return _text(args[0]).upper()

    def lcase(interp, args):
        return _text(args[0]).lower()

    def str_reverse(interp, args):
        return _text(args[0])[::-1]

    def space(interp, args):
        count = to_integer(args[0])
        if count < 0:
            raise_exception('ArgumentException', "Argument 'Number' must be greater or equal to zero.")
        return ' ' * count

    def str_dup(interp, args):
        count = to_integer(args[0])
        char = args[1]
        if isinstance(char, int) and not isinstance(char, bool):
            char = chr(char)
        char = _text(char)
        if not char:
            raise_exception('ArgumentException', "Length of argument 'Character' must be greater than zero.")
        return char[0] * max(count, 0)

    def str_comp(interp, args):
        a, b = _text(args[0]), _text(args[1])
        compare = arg(args, 2, 0)
        if _ignore_case(compare) or compare == 1:
            a, b = a.lower(), b.lower()
        return (a > b) - (a < b)

    def chr_fn(interp, args):
        code = to_integer(args[0])
        if code < 0 or code > 0xFFFF:
            raise_exception('ArgumentException', "Procedure call or argument is not valid.")
        return chr(code)

    def asc_fn(interp, args):
        text = _text(args[0])
        if not text:
            raise_exception('ArgumentException', "Length of argument 'String' must be greater than zero.")
        return ord(text[0])

    def lset(interp, args):
        count = to_integer(args[1])
        return _text(args[0])[:count].ljust(count)

    def rset(interp, args):
        count = to_integer(args[1])
        return _text(args[0])[:count].rjust(count)

    registry.function(('Len', 'Strings.Len'), len_fn, 1, 1, category='strings')
    registry.function(('Left', 'Strings.Left'), left, 2, 2, category='strings')
    registry.function(('Right', 'Strings.Right'), right, 2, 2, category='strings')
    registry.function(('Mid', 'Strings.Mid'), mid, 2, 3, category='strings')
    registry.function(('InStr', 'Strings.InStr'), instr, 2, 4, category='strings')
    registry.function(('InStrRev', 'Strings.InStrRev'), instr_rev, 2, 4, category='strings')
    registry.function(('Replace', 'Strings.Replace'), replace_fn, 3, 6, category='strings')
    registry.function(('Split', 'Strings.Split'), split_fn, 1, 4, category='strings')
    registry.function(('Join', 'Strings.Join'), join_fn, 1, 2, category='strings')
    registry.function(('Trim', 'Strings.Trim'), trim, 1, 1, category='strings')
    registry.function(('LTrim', 'Strings.LTrim'), ltrim, 1, 1, category='strings')
    registry.function(('RTrim', 'Strings.RTrim'), rtrim, 1, 1, category='strings')
    registry.function(('UCase', 'Strings.UCase'), ucase, 1, 1, category='strings')
    registry.function(('LCase', 'Strings.LCase'), lcase, 1, 1, category='strings')
    registry.function(('StrReverse', 'Strings.StrReverse'), str_reverse, 1, 1, category='strings')
    registry.function(('Space', 'Strings.Space'), space, 1, 1, category='strings')
    registry.function(('StrDup', 'Strings.StrDup'), str_dup, 2, 2, category='strings')
    registry.function(('StrComp', 'Strings.StrComp'), str_comp, 2, 3, category='strings')
    registry.function(('Chr', 'ChrW', 'Strings.Chr', 'Strings.ChrW'), chr_fn, 1, 1, category='strings')
    registry.function(('Asc', 'AscW', 'Strings.Asc', 'Strings.AscW'), asc_fn, 1, 1, category='strings')
    registry.function('LSet', lset, 2, 2, category='strings')
    registry.function('RSet', rset, 2, 2, category='strings')

    # ------------------------------------------------------------------
    # String statics
    # ------------------------------------------------------------------
    def is_null_or_empty(interp, args):
        return args[0] is NOTHING or to_string(args[0]) == ''

    def is_null_or_white_space(interp, args):
        return args[0] is NOTHING or to_string(args[0]).strip() == ''

    def string_join(interp, args):
        separator = _text(args[0])
        values = args[1:]
        if len(values) == 1 and is_sequence(values[0]):
            values = values_of(values[0])
        return separator.join(interp.stringify(v) for v in values)

    def string_concat(interp, args):
        values = list(args)
        if len(values) == 1 and is_sequence(values[0]):
            values = values_of(values[0])
        return ''.join(interp.stringify(v) for v in values)

    def string_format(interp, args):
        return composite_format(interp, _text(args[0]), rest_values(args, 1))

    def string_compare(interp, args):
        a, b = _text(args[0]), _text(args[1])
        if _ignore_case(arg(args, 2, False)):
            a, b = a.lower(), b.lower()
        return (a > b) - (a < b)

    def string_equals(interp, args):
        a, b = args[0], args[1]
        if a is NOTHING or b is NOTHING:
            return a is b
        a, b = to_string(a), to_string(b)
        if _ignore_case(arg(args, 2, False)):
            return a.lower() == b.lower()
        return a == b

    def new_string(interp, type_spec, args):
        if not args:
            return ''
        if isinstance(args[0], ArrayVal):
            return ''.join(to_string(c) for c in args[0].items)
        return to_char(args[0]) * to_integer(arg(args, 1, 1))

    registry.function('String.IsNullOrEmpty', is_null_or_empty, 1, 1, category='strings')
    registry.function('String.IsNullOrWhiteSpace', is_null_or_white_space, 1, 1, category='strings')
    registry.function('String.Join', string_join, 2, None, category='strings')
    registry.function('String.Concat', string_concat, 0, None, category='strings')
    registry.function('String.Format', string_format, 1, None, category='strings')
    registry.function(('String.Compare', 'String.CompareOrdinal'), string_compare, 2, 3, category='strings')
    registry.function('String.Equals', string_equals, 2, 3, category='strings')
    registry.function('String.Copy', lambda interp, args: _text(args[0]), 1, 1, category='strings')
    registry.constant('String.Empty', '')
    registry.constructor('String', new_string)

    # ------------------------------------------------------------------
    # Members of string values
    # ------------------------------------------------------------------
    def s_length(interp, s, args):
        return len(s)

    def s_chars(interp, s, args):
        index = to_integer(args[0])
        if index < 0 or index >= len(s):
            raise_exception('IndexOutOfRangeException', 'Index was outside the bounds of the array.')
        return s[index]

    def s_to_upper(interp, s, args):
        return s.upper()

    def s_to_lower(interp, s, args):
        return s.lower()

    def trim_chars(args) -> Optional[str]:
        chars = rest_values(args, 0)
        return ''.join(to_string(c) for c in chars) if chars else None

    def s_trim(interp, s, args):
        return s.strip(trim_chars(args))

    def s_trim_start(interp, s, args):
        return s.lstrip(trim_chars(args))

    def s_trim_end(interp, s, args):
        return s.rstrip(trim_chars(args))

    def s_substring(interp, s, args):
        start = to_integer(args[0])
        _check_range(0 <= start <= len(s), 'startIndex')
        if len(args) > 1:
            length = to_integer(args[1])
            _check_range(length >= 0 and start + length <= len(s), 'length')
            return s[start:start + length]
        return s[start:]

    def s_index_of(interp, s, args):
        needle = _text(args[0])
        start = 0
        ignore = False
        for extra in args[1:]:
            if isinstance(extra, EnumVal):
                ignore = _ignore_case(extra)
            else:
                start = to_integer(extra)
                _check_range(0 <= start <= len(s), 'startIndex')
                break
        return _find(s, needle, start, ignore)

    def s_last_index_of(interp, s, args):
        needle = _text(args[0])
        if len(args) > 1 and not isinstance(args[1], EnumVal):
            end = to_integer(args[1])
            return s[:end + 1].rfind(needle)
        if len(args) > 1 and _ignore_case(args[1]):
            return s.lower().rfind(needle.lower())
        return s.rfind(needle)

    def s_index_of_any(interp, s, args):
        chars = set(to_string(c) for c in values_of(args[0]))
        start = int_arg(args, 1, 0)
        for i in range(start, len(s)):
            if s[i] in chars:
                return i
        return -1

    def s_contains(interp, s, args):
        needle = _text(args[0])
        if _ignore_case(arg(args, 1, False)):
            return needle.lower() in s.lower()
        return needle in s

    def s_starts_with(interp, s, args):
        prefix = _text(args[0])
        if _ignore_case(arg(args, 1, False)):
            return s.lower().startswith(prefix.lower())
        return s.startswith(prefix)

    def s_ends_with(interp, s, args):
        suffix = _text(args[0])
        if _ignore_case(arg(args, 1, False)):
            return s.lower().endswith(suffix.lower())
        return s.endswith(suffix)

    def s_replace(interp, s, args):
        old = _text(args[0])
        if not old:
            raise_exception('ArgumentException', 'String cannot be of zero length.')
        return s.replace(old, _text(args[1]))

    def s_split(interp, s, args):
        separators: List[str] = []
        remove_empty = False
        limit = None
        for value in args:
            if isinstance(value, EnumVal) and value.enum_name == 'StringSplitOptions':
                remove_empty = bool(int(value) & 1)
            elif isinstance(value, ArrayVal):
                separators.extend(to_string(v) for v in value.items)
            elif isinstance(value, int) and not isinstance(value, bool):
                limit = int(value)
            elif value is not NOTHING:
                separators.append(to_string(value))
        return string_array(split_text(s, separators, remove_empty, limit))

    def s_pad_left(interp, s, args):
        width = to_integer(args[0])
        fill = to_char(args[1]) if len(args) > 1 else ' '
        return s.rjust(width, fill)

    def s_pad_right(interp, s, args):
        width = to_integer(args[0])
        fill = to_char(args[1]) if len(args) > 1 else ' '
        return s.ljust(width, fill)

    def s_insert(interp, s, args):
        index = to_integer(args[0])
        _check_range(0 <= index <= len(s), 'startIndex')
        return s[:index] + _text(args[1]) + s[index:]

    def s_remove(interp, s, args):
        start = to_integer(args[0])
        _check_range(0 <= start <= len(s), 'startIndex')
        if len(args) > 1:
            count = to_integer(args[1])
            _check_range(count >= 0 and start + count <= len(s), 'count')
            return s[:start] + s[start + count:]
        return s[:start]

    def s_to_char_array(interp, s, args):
        return ArrayVal(TypeSpec('Char'), [len(s)], list(s))

    def s_compare_to(interp, s, args):
        other = _text(args[0])
        return (s > other) - (s < other)

    def s_equals(interp, s, args):
        other = args[0]
        if not isinstance(other, str):
            return False
        if _ignore_case(arg(args, 1, False)):
            return s.lower() == other.lower()
        return s == other

    def s_to_string(interp, s, args):
        return s

    registry.method('string', 'Length', s_length, 0, 0, category='strings')
    registry.method('string', 'Chars', s_chars, 1, 1, category='strings')
    registry.method('string', ('ToUpper', 'ToUpperInvariant'), s_to_upper, 0, 0, category='strings')
    registry.method('string', ('ToLower', 'ToLowerInvariant'), s_to_lower, 0, 0, category='strings')
    registry.method('string', 'Trim', s_trim, 0, None, category='strings')
    registry.method('string', 'TrimStart', s_trim_start, 0, None, category='strings')
    registry.method('string', 'TrimEnd', s_trim_end, 0, None, category='strings')
    registry.method('string', 'Substring', s_substring, 1, 2, category='strings')
    registry.method('string', 'IndexOf', s_index_of, 1, 3, category='strings')
    registry.method('string', 'LastIndexOf', s_last_index_of, 1, 2, category='strings')
    registry.method('string', 'IndexOfAny', s_index_of_any, 1, 2, category='strings')
    registry.method('string', 'Contains', s_contains, 1, 2, category='strings')
    registry.method('string', 'StartsWith', s_starts_with, 1, 2, category='strings')
    registry.method('string', 'EndsWith', s_ends_with, 1, 2, category='strings')
    registry.method('string', 'Replace', s_replace, 2, 2, category='strings')
    registry.method('string', 'Split', s_split, 0, None, category='strings')
    registry.method('string', 'PadLeft', s_pad_left, 1, 2, category='strings')
    registry.method('string', 'PadRight', s_pad_right, 1, 2, category='strings')
    registry.method('string', 'Insert', s_insert, 2, 2, category='strings')
    registry.method('string', 'Remove', s_remove, 1, 2, category='strings')
    registry.method('string', 'ToCharArray', s_to_char_array, 0, 0, category='strings')
    registry.method('string', 'CompareTo', s_compare_to, 1, 1, category='strings')
    registry.method('string', 'Equals', s_equals, 1, 2, category='strings')
    registry.method('string', ('ToString', 'Clone', 'Normalize'), s_to_string, 0, 1, category='strings')

    # ------------------------------------------------------------------
    # Char statics
    # ------------------------------------------------------------------
    def char_predicate(test):
        def check(interp, args):
            text = _text(args[0])
            index = int_arg(args, 1, 0)
            if index < 0 or index >= len(text):
                raise_exception('ArgumentOutOfRangeException', 'Index was out of range.')
            return test(text[index])
        return check

    registry.function('Char.IsDigit', char_predicate(lambda c: c.isdigit()), 1, 2, category='strings')
    registry.function('Char.IsNumber', char_predicate(lambda c: c.isnumeric()), 1, 2, category='strings')
    registry.function('Char.IsLetter', char_predicate(lambda c: c.isalpha()), 1, 2, category='strings')
    registry.function('Char.IsLetterOrDigit', char_predicate(lambda c: c.isalnum()), 1, 2, category='strings')
    registry.function('Char.IsWhiteSpace', char_predicate(lambda c: c.isspace()), 1, 2, category='strings')
    registry.function('Char.IsUpper', char_predicate(lambda c: c.isupper()), 1, 2, category='strings')
    registry.function('Char.IsLower', char_predicate(lambda c: c.islower()), 1, 2, category='strings')
    registry.function('Char.IsPunctuation',
                      char_predicate(lambda c: not c.isalnum() and not c.isspace() and c.isprintable()),
                      1, 2, category='strings')
    registry.function('Char.ToUpper', lambda interp, args: to_char(args[0]).upper(), 1, 1, category='strings')
    registry.function('Char.ToLower', lambda interp, args: to_char(args[0]).lower(), 1, 1, category='strings')
    registry.function('Char.ConvertFromUtf32', lambda interp, args: chr(to_integer(args[0])), 1, 1,
                      category='strings')

    # ------------------------------------------------------------------
    # StringBuilder
    # ------------------------------------------------------------------
    def new_string_builder(interp, type_spec, args):
        initial = arg(args, 0, '')
        return StringBuilderVal(initial if isinstance(initial, str) else '')

    def sb_append(interp, sb, args):
        sb.text += ''.join(interp.stringify(v) for v in args)
        return sb

    def sb_append_line(interp, sb, args):
        sb.text += (interp.stringify(args[0]) if args else '') + '\n'
        return sb

    def sb_append_format(interp, sb, args):
        sb.text += composite_format(interp, _text(args[0]), rest_values(args, 1))
        return sb

    def sb_insert(interp, sb, args):
        index = to_integer(args[0])
        _check_range(0 <= index <= len(sb.text), 'index')
        sb.text = sb.text[:index] + interp.stringify(args[1]) + sb.text[index:]
        return sb

    def sb_remove(interp, sb, args):
        start, count = to_integer(args[0]), to_integer(args[1])
        _check_range(0 <= start and count >= 0 and start + count <= len(sb.text), 'length')
        sb.text = sb.text[:start] + sb.text[start + count:]
        return sb

    def sb_replace(interp, sb, args):
        sb.text = sb.text.replace(_text(args[0]), _text(args[1]))
        return sb

    def sb_clear(interp, sb, args):
        sb.text = ''
        return sb

    def sb_to_string(interp, sb, args):
        if len(args) == 2:
            start, length = to_integer(args[0]), to_integer(args[1])
            return sb.text[start:start + length]
        return sb.text

    def sb_length(interp, sb, args):
        return len(sb.text)

    def sb_set_length(interp, sb, args):
        length = to_integer(args[0])
        sb.text = sb.text[:length].ljust(length, '\0')

    registry.constructor('StringBuilder', new_string_builder)
    registry.method('stringbuilder', 'Append', sb_append, 1, None, category='strings')
    registry.method('stringbuilder', 'AppendLine', sb_append_line, 0, 1, category='strings')
    registry.method('stringbuilder', 'AppendFormat', sb_append_format, 1, None, category='strings')
    registry.method('stringbuilder', 'Insert', sb_insert, 2, 2, category='strings')
    registry.method('stringbuilder', 'Remove', sb_remove, 2, 2, category='strings')
    registry.method('stringbuilder', 'Replace', sb_replace, 2, 2, category='strings')
    registry.method('stringbuilder', 'Clear', sb_clear, 0, 0, category='strings')
    registry.method('stringbuilder', 'ToString', sb_to_string, 0, 2, category='strings')
    registry.method('stringbuilder', 'Length', sb_length, 0, 0, category='strings')
    registry.method('stringbuilder', 'set_Length', sb_set_length, 1, 1, category='strings')

    # ------------------------------------------------------------------
    # Constants
    # ------------------------------------------------------------------
    registry.constant(('vbCrLf', 'vbNewLine', 'ControlChars.CrLf', 'ControlChars.NewLine'), '\r\n')
    registry.constant(('vbCr', 'ControlChars.Cr'), '\r')
    registry.constant(('vbLf', 'ControlChars.Lf'), '\n')
    registry.constant(('vbTab', 'ControlChars.Tab'), '\t')
    registry.constant(('vbBack', 'ControlChars.Back'), '\b')
    registry.constant(('vbNullChar', 'ControlChars.NullChar'), '\0')
    registry.constant('ControlChars.Quote', '"')
    registry.constant('vbNullString', '')
    registry.constant('Environment.NewLine', '\n')
    registry.constant(('vbBinaryCompare', 'CompareMethod.Binary'), EnumVal(0, 'CompareMethod', 'Binary'))
    registry.constant(('vbTextCompare', 'CompareMethod.Text'), EnumVal(1, 'CompareMethod', 'Text'))
    for value, name in enumerate(STRING_COMPARISON):
        registry.constant(f"StringComparison.{name}", EnumVal(value, 'StringComparison', name))
    registry.constant('StringSplitOptions.None', EnumVal(0, 'StringSplitOptions', 'None'))
    registry.constant('StringSplitOptions.RemoveEmptyEntries', EnumVal(1, 'StringSplitOptions', 'RemoveEmptyEntries'))
    registry.constant('StringSplitOptions.TrimEntries', EnumVal(2, 'StringSplitOptions', 'TrimEntries'))
