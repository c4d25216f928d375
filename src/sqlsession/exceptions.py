"""sqlsession 例外クラス."""


class SqlSessionError(Exception):
    """sqlsession の基底例外."""


class StatementError(SqlSessionError):
    """SQL 文の組み立てエラー."""


class MappingError(SqlSessionError, TypeError):
    """マッピングエラー（格納先の型が不正、またはエンティティを生成できない）."""


class ParameterTypeError(SqlSessionError, TypeError):
    """バインドできない型のパラメータ."""


class UnconditionalMutationError(SqlSessionError):
    """WHERE 条件のない UPDATE / DELETE."""


class NoRowsError(SqlSessionError, LookupError):
    """単一行の取得で結果が 0 件."""


class SqlCancelledError(SqlSessionError, TimeoutError):
    """Deadline 超過またはキャンセルにより実行を中断した."""


class ArgumentCountError(ValueError):
    """プレースホルダ数と引数の数が一致しない.

    呼び出し側コードの不具合を示すため、SqlSessionError を継承しない。
    """
